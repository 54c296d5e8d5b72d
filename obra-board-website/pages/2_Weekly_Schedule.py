"""Agenda semanal: backlog plus one cell per working day and hour."""

from datetime import date, datetime, timedelta

import streamlit as st
from streamlit_sortables import sort_items

from obra_board.board.dnd import build_layout, diff_layout
from obra_board.board.partition import BACKLOG_BUCKET, cell_id
from obra_board.board.types import DAY_NAMES, TIME_SLOTS, WORKING_DAYS, slot_label
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

WEEK_KEY = "obra_week_anchor"

set_theme(page_title="Agenda Semanal", page_icon="📅")

backend = get_backend()
project = project_picker(backend)
if project is None:
    st.stop()

board = get_board_session(project.id, source="weekly")

if WEEK_KEY not in st.session_state:
    st.session_state[WEEK_KEY] = date.today()

st.title(f"Agenda Semanal · {project.name}")
render_filters(board, "weekly")

n1, n2, n3, n4, _ = st.columns([1, 1, 1, 1, 4])
with n1:
    if st.button("◀ Semana anterior", key="week-prev"):
        st.session_state[WEEK_KEY] -= timedelta(days=7)
        st.rerun()
with n2:
    if st.button("Hoje", key="week-today"):
        st.session_state[WEEK_KEY] = date.today()
        st.rerun()
with n3:
    if st.button("Próxima semana ▶", key="week-next"):
        st.session_state[WEEK_KEY] += timedelta(days=7)
        st.rerun()
with n4:
    if st.button("➕ Nova tarefa", key="week-new"):
        create_task_dialog(board)

anchor = st.session_state[WEEK_KEY]
grid = board.week_grid(anchor, now=datetime.now())
days = grid.days
st.caption(f"Semana de {days[0]:%d/%m/%Y} a {days[-1]:%d/%m/%Y}")

groups = [(BACKLOG_BUCKET, f"Backlog ({len(grid.backlog)})", grid.backlog)]
for day_index, day in enumerate(days):
    day_name = DAY_NAMES[WORKING_DAYS[day_index]]
    for hour in TIME_SLOTS:
        key = cell_id(day_index, hour)
        groups.append((key, f"{day_name} {day:%d/%m} {slot_label(hour)}", grid.tasks_in(key)))

layout = build_layout(groups)
result = sort_items(
    layout.containers,
    multi_containers=True,
    direction="horizontal",
    key=f"weekly-{project.id}-{days[0].isoformat()}-{board.store.revision}",
)
event = diff_layout(layout, result)
if event is not None:
    reconciler = board.week_reconciler(anchor)
    reconciler.begin_drag(event.task_id)
    run_async(reconciler.reconcile(event))
    st.rerun()

if grid.outside:
    st.caption(f"{len(grid.outside)} tarefa(s) agendada(s) fora do horário de trabalho desta semana.")

scheduled = [t for items in grid.groups().values() for t in items]
if scheduled:
    e1, e2 = st.columns([3, 1])
    with e1:
        selected = st.selectbox(
            "Tarefa",
            options=[t.id for t in scheduled],
            format_func=lambda tid: board.store.get(tid).title if board.store.get(tid) else tid,
            key="weekly-edit-select",
        )
    with e2:
        st.write("")
        if st.button("✏️ Editar", key="weekly-edit"):
            edit_task_dialog(board, selected)


@st.fragment(run_every=5)
def _watch_changes(rendered_revision: int) -> None:
    if board.store.revision != rendered_revision:
        st.rerun()


_watch_changes(board.store.revision)
flush_toasts()
