import os

import streamlit as st
from streamlit.errors import StreamlitAPIException

from obra_board.board.types import LANES


# Header colours per lane; card CSS classes are ``obra-lane-<lane>``.
LANE_COLORS = {
    "backlog": "#636e72",
    "todo": "#0984e3",
    "doing": "#e17055",
    "done": "#00b894",
    "blocked": "#d63031",
}


def theme_path() -> str:
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), '..', 'assets', 'custom_theme.css')


def lane_css() -> str:
    rules = [
        f".obra-lane-{lane} {{ background:{LANE_COLORS[lane]}; }}"
        for lane in LANES
    ]
    return "\n".join(rules)


def set_theme(
    page_title: str = "Obra Board",
    page_icon: str = "🏗️",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
):
    """Configure Streamlit page & inject the board CSS.

    Safe to call once at top of each page. Subsequent calls will be ignored by
    Streamlit for page_config but CSS will still be (re)injected.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        # set_page_config can only be called once; ignore if already set.
        pass

    theme_file = theme_path()
    try:
        with open(theme_file, 'r', encoding='utf-8') as f:
            css = f.read()
    except FileNotFoundError:
        st.error(f"Theme file not found at {theme_file}. Please check the file path.")
        css = ""
    st.markdown(f"<style>{css}\n{lane_css()}</style>", unsafe_allow_html=True)
