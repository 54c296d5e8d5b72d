"""Quadro Kanban: lanes with drag and drop, dialogs, summary and CSV export."""

from datetime import datetime

import streamlit as st
from streamlit_sortables import sort_items

from obra_board.board.dnd import build_layout, diff_layout
from obra_board.board.export import lane_priority_chart, tasks_to_csv
from obra_board.board.filters import is_overdue
from obra_board.board.types import LANE_LABELS, LANES
from obra_board.theme import set_theme
from obra_board.ui import (
    create_task_dialog,
    edit_task_dialog,
    flush_toasts,
    get_backend,
    get_board_session,
    project_picker,
    render_filters,
    run_async,
)

set_theme(page_title="Quadro Kanban", page_icon="🗂")

backend = get_backend()
project = project_picker(backend)
if project is None:
    st.stop()

board = get_board_session(project.id, source="kanban")

st.title(f"Quadro Kanban · {project.name}")
render_filters(board, "kanban")

b1, b2, _ = st.columns([1, 1, 6])
with b1:
    if st.button("➕ Nova tarefa", key="kanban-new"):
        create_task_dialog(board)
with b2:
    if st.button("↻ Atualizar", key="kanban-refresh"):
        if board.refresh():
            st.toast("Tarefas atualizadas", icon="✅")

now = datetime.now()
visible = board.visible_tasks(now)
lanes = board.lanes(now)

board_tab, summary_tab, export_tab = st.tabs(["🗂 Quadro", "📊 Resumo", "📁 Exportar"])

with board_tab:
    layout = build_layout(
        [(lane, f"{LANE_LABELS[lane]} ({len(lanes[lane])})", lanes[lane]) for lane in LANES]
    )
    result = sort_items(
        layout.containers,
        multi_containers=True,
        direction="vertical",
        key=f"kanban-{project.id}-{board.store.revision}",
    )
    event = diff_layout(layout, result)
    if event is not None:
        reconciler = board.lane_reconciler()
        reconciler.begin_drag(event.task_id)
        run_async(reconciler.reconcile(event))
        st.rerun()

    overdue = [t for t in visible if is_overdue(t, now)]
    if overdue:
        st.markdown(
            f"<span class='obra-overdue'>{len(overdue)} tarefa(s) atrasada(s)</span>",
            unsafe_allow_html=True,
        )

    if visible:
        e1, e2 = st.columns([3, 1])
        with e1:
            selected = st.selectbox(
                "Tarefa",
                options=[t.id for t in visible],
                format_func=lambda tid: board.store.get(tid).title if board.store.get(tid) else tid,
                key="kanban-edit-select",
            )
        with e2:
            st.write("")
            if st.button("✏️ Editar", key="kanban-edit"):
                edit_task_dialog(board, selected)

with summary_tab:
    st.plotly_chart(lane_priority_chart(visible), use_container_width=True)

with export_tab:
    st.download_button(
        "Baixar tarefas.csv",
        data=tasks_to_csv(visible),
        file_name=f"tarefas-{project.name}.csv",
        mime="text/csv",
        key="kanban-csv",
    )


@st.fragment(run_every=5)
def _watch_changes(rendered_revision: int) -> None:
    # Change-feed refreshes land in the store from other threads.
    if board.store.revision != rendered_revision:
        st.rerun()


_watch_changes(board.store.revision)
flush_toasts()
