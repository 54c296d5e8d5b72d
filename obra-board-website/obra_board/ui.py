"""Streamlit glue shared by the board pages.

Keeps one backend per process and one ``BoardSession`` per browser session
(in ``st.session_state``). Notifications are buffered and shown as toasts on
the next render, since change-feed refreshes may run outside the script thread.
"""
from __future__ import annotations

import asyncio
from datetime import datetime, time
from typing import Any, Coroutine, List, Optional

import streamlit as st
from pydantic import ValidationError

from obra_board.board.backend import SqlTaskBackend
from obra_board.board.config import get_config
from obra_board.board.filters import ALL
from obra_board.board.notify import RecordingNotifier
from obra_board.board.schemas import changed_fields
from obra_board.board.seed import seed_demo
from obra_board.board.session import BoardSession
from obra_board.board.types import (
    LANE_LABELS,
    LANES,
    PRIORITIES,
    PRIORITY_LABELS,
    STATUS_LABELS,
    STATUSES,
    Project,
    Task,
)
from obra_board.logging_setup import configure_logging
from obra_board.sync_log import LoggedTaskBackend

SESSION_KEY = "obra_board_session"
PROJECT_KEY = "obra_board_project_id"
NOTIFIER_KEY = "obra_board_notifier"

TOAST_ICONS = {"success": "✅", "error": "❌", "info": "ℹ️"}


@st.cache_resource
def get_backend() -> SqlTaskBackend:
    config = get_config()
    configure_logging(config.log_level)
    backend = SqlTaskBackend(config.database_url).init()
    if config.seed_demo_data and config.is_local_sqlite:
        seed_demo(backend)
    return backend


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    return asyncio.run(coro)


def get_notifier() -> RecordingNotifier:
    if NOTIFIER_KEY not in st.session_state:
        st.session_state[NOTIFIER_KEY] = RecordingNotifier()
    return st.session_state[NOTIFIER_KEY]


def flush_toasts() -> None:
    for level, title, message in get_notifier().drain():
        text = f"**{title}** {message}".strip()
        st.toast(text, icon=TOAST_ICONS.get(level))


def project_picker(backend: SqlTaskBackend) -> Optional[Project]:
    projects = backend.list_projects()
    if not projects:
        st.info("Nenhuma obra cadastrada ainda.")
        return None
    ids = [p.id for p in projects]
    current = st.session_state.get(PROJECT_KEY)
    index = ids.index(current) if current in ids else 0
    chosen = st.sidebar.selectbox(
        "Obra",
        options=projects,
        index=index,
        format_func=lambda p: p.name,
        key="obra-picker",
    )
    st.session_state[PROJECT_KEY] = chosen.id
    return chosen


def get_board_session(project_id: str, source: str) -> BoardSession:
    """Current browser session's board for ``project_id``; reopened on project change."""
    config = get_config()
    board: Optional[BoardSession] = st.session_state.get(SESSION_KEY)
    if board is not None and board.project_id == project_id:
        return board
    if board is not None:
        board.close()

    backend = LoggedTaskBackend(get_backend(), source=source)
    board = BoardSession(
        backend,
        project_id,
        notifier=get_notifier(),
        notify_on_success=config.notify_on_success,
    ).open()
    st.session_state[SESSION_KEY] = board
    return board


def render_filters(board: BoardSession, key_prefix: str) -> None:
    team_options = [ALL] + [t.id for t in board.teams]
    team_names = {t.id: t.name for t in board.teams}

    c1, c2, c3, c4 = st.columns([2.2, 1.2, 1.2, 0.9])
    with c1:
        search = st.text_input("Buscar tarefa", placeholder="Digite para filtrar…", key=f"{key_prefix}-search")
    with c2:
        team_id = st.selectbox(
            "Equipe",
            options=team_options,
            format_func=lambda v: "Todas" if v == ALL else team_names.get(v, v),
            key=f"{key_prefix}-team",
        )
    with c3:
        lane = st.selectbox(
            "Raia",
            options=[ALL] + list(LANES),
            format_func=lambda v: "Todas" if v == ALL else LANE_LABELS[v],
            key=f"{key_prefix}-lane",
        )
    with c4:
        overdue = st.toggle("Atrasadas", key=f"{key_prefix}-overdue")

    filters = board.set_filters(team_id=team_id, lane=lane, search_text=search, overdue_only=overdue)
    if filters.active_count:
        st.markdown(
            f"Filtros ativos <span class='obra-filter-badge'>{filters.active_count}</span>",
            unsafe_allow_html=True,
        )


def _combine(day, hour: Optional[time]) -> Optional[datetime]:
    if day is None:
        return None
    return datetime.combine(day, hour or time(hour=7))


def _task_form_fields(board: BoardSession, task: Optional[Task], key: str) -> dict:
    team_options: List[Optional[str]] = [None] + [t.id for t in board.teams]
    team_names = {t.id: t.name for t in board.teams}

    title = st.text_input("Título", value=task.title if task else "", key=f"{key}-title")
    description = st.text_area("Descrição", value=(task.description or "") if task else "", key=f"{key}-desc")
    c1, c2, c3 = st.columns(3)
    with c1:
        lane = st.selectbox(
            "Raia",
            options=list(LANES),
            index=LANES.index(task.lane) if task else 0,
            format_func=lambda v: LANE_LABELS[v],
            key=f"{key}-lane",
        )
    with c2:
        status = st.selectbox(
            "Status",
            options=list(STATUSES),
            index=STATUSES.index(task.status) if task else 0,
            format_func=lambda v: STATUS_LABELS[v],
            key=f"{key}-status",
        )
    with c3:
        priority = st.selectbox(
            "Prioridade",
            options=list(PRIORITIES),
            index=PRIORITIES.index(task.priority) if task else 1,
            format_func=lambda v: PRIORITY_LABELS[v],
            key=f"{key}-priority",
        )
    team_id = st.selectbox(
        "Equipe",
        options=team_options,
        index=team_options.index(task.team_id) if task and task.team_id in team_options else 0,
        format_func=lambda v: "Sem equipe" if v is None else team_names.get(v, v),
        key=f"{key}-team",
    )
    d1, d2 = st.columns(2)
    with d1:
        start_day = st.date_input("Início", value=task.start_at.date() if task and task.start_at else None, key=f"{key}-sd")
        start_time = st.time_input("Hora início", value=task.start_at.time() if task and task.start_at else time(7), key=f"{key}-st")
    with d2:
        end_day = st.date_input("Fim", value=task.end_at.date() if task and task.end_at else None, key=f"{key}-ed")
        end_time = st.time_input("Hora fim", value=task.end_at.time() if task and task.end_at else time(8), key=f"{key}-et")
    notes = st.text_area("Observações", value=(task.notes or "") if task else "", key=f"{key}-notes")

    return {
        "title": title,
        "description": description,
        "lane": lane,
        "status": status,
        "priority": priority,
        "team_id": team_id,
        "start_at": _combine(start_day, start_time),
        "end_at": _combine(end_day, end_time),
        "notes": notes,
    }


def _show_validation(exc: ValidationError) -> None:
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ())) or "form"
        st.error(f"{field}: {err.get('msg')}")


@st.dialog("Nova tarefa")
def create_task_dialog(board: BoardSession) -> None:
    with st.form("create-task-form"):
        fields = _task_form_fields(board, None, "create")
        submitted = st.form_submit_button("Criar", type="primary")
    if submitted:
        try:
            task = board.create_task(**fields)
        except ValidationError as exc:
            _show_validation(exc)
            return
        if task is not None:
            st.rerun()


@st.dialog("Editar tarefa")
def edit_task_dialog(board: BoardSession, task_id: str) -> None:
    task = board.store.get(task_id)
    if task is None:
        st.warning("Tarefa não encontrada.")
        return
    with st.form(f"edit-task-form-{task_id}"):
        fields = _task_form_fields(board, task, f"edit-{task_id}")
        c1, c2 = st.columns(2)
        with c1:
            saved = st.form_submit_button("Salvar", type="primary")
        with c2:
            deleted = st.form_submit_button("Excluir")
    if saved:
        try:
            board.edit_task(task_id, **changed_fields(task, fields))
        except ValidationError as exc:
            _show_validation(exc)
            return
        st.rerun()
    if deleted:
        board.delete_task(task_id)
        st.rerun()
