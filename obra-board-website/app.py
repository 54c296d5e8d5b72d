from datetime import datetime

import streamlit as st

from obra_board.board.filters import is_overdue
from obra_board.board.types import LANE_LABELS, LANES
from obra_board.theme import set_theme
from obra_board.ui import flush_toasts, get_backend, get_board_session, project_picker

set_theme()

backend = get_backend()

st.markdown(
    "<div class='obra-hero'><h1>Obra Board</h1>"
    "<p>Planejamento de tarefas por obra: quadro Kanban e agenda semanal com arrastar e soltar.</p></div>",
    unsafe_allow_html=True,
)

project = project_picker(backend)

with st.sidebar.expander("Nova obra", expanded=project is None):
    with st.form("new-project-form", clear_on_submit=True):
        name = st.text_input("Nome")
        address = st.text_input("Endereço")
        if st.form_submit_button("Cadastrar") and name.strip():
            backend.create_project(name.strip(), address=address.strip() or None)
            st.rerun()

if project is not None:
    with st.sidebar.expander("Nova equipe"):
        with st.form("new-team-form", clear_on_submit=True):
            team_name = st.text_input("Nome da equipe")
            t1, t2 = st.columns(2)
            with t1:
                start = st.text_input("Início", value="07:00")
            with t2:
                end = st.text_input("Fim", value="17:00")
            if st.form_submit_button("Cadastrar") and team_name.strip():
                backend.create_team(project.id, team_name.strip(), start_time=start, end_time=end)
                get_board_session(project.id, source="home").refresh()
                st.rerun()

    board = get_board_session(project.id, source="home")
    tasks = board.store.all()

    st.subheader(project.name)
    if project.address:
        st.caption(project.address)

    cols = st.columns(len(LANES) + 1)
    for col, lane in zip(cols, LANES):
        count = sum(1 for t in tasks if t.lane == lane)
        col.markdown(
            f"<div class='stat-card'><div class='stat-value'>{count}</div>"
            f"<div class='stat-label'>{LANE_LABELS[lane]}</div></div>",
            unsafe_allow_html=True,
        )
    overdue = sum(1 for t in tasks if is_overdue(t, datetime.now()))
    cols[-1].markdown(
        f"<div class='stat-card'><div class='stat-value obra-overdue'>{overdue}</div>"
        "<div class='stat-label'>Atrasadas</div></div>",
        unsafe_allow_html=True,
    )

    st.markdown("Use o menu lateral para abrir o **Quadro Kanban**, a **Agenda Semanal** ou o **Log de Sincronização**.")

flush_toasts()
