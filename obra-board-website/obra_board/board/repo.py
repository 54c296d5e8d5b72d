"""Board repository: thin SQLAlchemy pass-through for projects, teams and tasks.

Every write commits, then publishes the table name on the change feed so
open boards re-fetch. Deleting a task only flags it; flagged rows never come
back from the fetch functions.
"""
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from obra_board.board.changes import ChangeFeed, get_change_feed
from obra_board.board.db import get_engine, get_session
from obra_board.board.errors import BackendError, TaskNotFoundError
from obra_board.board.models import Base, ProjectRow, TaskRow, TeamRow
from obra_board.board.types import (
    DEFAULT_LANE,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    Project,
    Task,
    Team,
)

logger = logging.getLogger(__name__)

# Columns a caller may write on a task. Everything else is server-managed.
TASK_WRITABLE_FIELDS = (
    "title",
    "description",
    "status",
    "priority",
    "lane",
    "sort_order",
    "start_at",
    "end_at",
    "team_id",
    "notes",
)


def init_db(database_url: str) -> None:
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)


@contextmanager
def _backend_errors(operation: str, **context: Any) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "backend_error",
            extra={"operation": operation, "error_type": type(exc).__name__, **context},
        )
        raise BackendError(f"{operation} failed: {exc}") from exc


def _active_tasks(project_id: str):
    return (
        select(TaskRow)
        .where(TaskRow.project_id == str(project_id))
        .where(TaskRow.deleted.is_(False))
        .order_by(TaskRow.sort_order.asc())
    )


# ---------------- Projects ----------------


def list_projects(database_url: str) -> List[Project]:
    with _backend_errors("list_projects"), get_session(database_url) as s:
        rows = s.execute(
            select(ProjectRow).where(ProjectRow.deleted.is_(False)).order_by(ProjectRow.name)
        ).scalars().all()
        return [r.to_record() for r in rows]


def create_project(
    database_url: str,
    *,
    name: str,
    address: Optional[str] = None,
    description: Optional[str] = None,
    feed: Optional[ChangeFeed] = None,
) -> Project:
    with _backend_errors("create_project"), get_session(database_url) as s:
        row = ProjectRow(name=str(name or "Sem nome"), address=address, description=description)
        s.add(row)
        s.commit()
        record = row.to_record()
    (feed or get_change_feed()).publish("projects")
    return record


# ---------------- Teams ----------------


def fetch_teams(database_url: str, project_id: str) -> List[Team]:
    with _backend_errors("fetch_teams", project_id=project_id), get_session(database_url) as s:
        rows = s.execute(
            select(TeamRow)
            .where(TeamRow.project_id == str(project_id))
            .where(TeamRow.deleted.is_(False))
            .order_by(TeamRow.name)
        ).scalars().all()
        return [r.to_record() for r in rows]


def create_team(
    database_url: str,
    *,
    project_id: str,
    name: str,
    start_time: str = "07:00",
    end_time: str = "17:00",
    work_days: Sequence[int] = (1, 2, 3, 4, 5),
    feed: Optional[ChangeFeed] = None,
) -> Team:
    with _backend_errors("create_team", project_id=project_id), get_session(database_url) as s:
        row = TeamRow(
            project_id=str(project_id),
            name=str(name),
            start_time=start_time,
            end_time=end_time,
            work_days_json=json.dumps([int(d) for d in work_days]),
        )
        s.add(row)
        s.commit()
        record = row.to_record()
    (feed or get_change_feed()).publish("teams")
    return record


# ---------------- Tasks ----------------


def fetch_tasks(database_url: str, project_id: str) -> List[Task]:
    with _backend_errors("fetch_tasks", project_id=project_id), get_session(database_url) as s:
        rows = s.execute(_active_tasks(project_id)).unique().scalars().all()
        return [r.to_record() for r in rows]


def fetch_tasks_by_lane(database_url: str, project_id: str, lane: str) -> List[Task]:
    with _backend_errors("fetch_tasks_by_lane", project_id=project_id), get_session(database_url) as s:
        rows = s.execute(
            _active_tasks(project_id).where(TaskRow.lane == str(lane))
        ).unique().scalars().all()
        return [r.to_record() for r in rows]


def fetch_tasks_by_week(
    database_url: str, project_id: str, week_start: datetime, week_end: datetime
) -> List[Task]:
    """Tasks whose start falls inside ``[week_start, week_end]``."""
    with _backend_errors("fetch_tasks_by_week", project_id=project_id), get_session(database_url) as s:
        rows = s.execute(
            _active_tasks(project_id)
            .where(TaskRow.start_at.is_not(None))
            .where(TaskRow.start_at >= week_start)
            .where(TaskRow.start_at <= week_end)
        ).unique().scalars().all()
        return [r.to_record() for r in rows]


def get_task(database_url: str, task_id: str) -> Optional[Task]:
    with _backend_errors("get_task", task_id=task_id), get_session(database_url) as s:
        row = s.get(TaskRow, str(task_id))
        if row is None or row.deleted:
            return None
        return row.to_record()


def create_task(
    database_url: str, fields: Dict[str, Any], *, feed: Optional[ChangeFeed] = None
) -> Task:
    """Insert one task. id and timestamps are assigned here."""
    project_id = fields.get("project_id")
    if not project_id:
        raise ValueError("project_id is required")
    with _backend_errors("create_task", project_id=project_id), get_session(database_url) as s:
        row = TaskRow(
            project_id=str(project_id),
            title=str(fields.get("title") or "").strip(),
            description=fields.get("description"),
            status=fields.get("status") or DEFAULT_STATUS,
            priority=fields.get("priority") or DEFAULT_PRIORITY,
            lane=fields.get("lane") or DEFAULT_LANE,
            sort_order=int(fields.get("sort_order") or 0),
            start_at=fields.get("start_at"),
            end_at=fields.get("end_at"),
            team_id=fields.get("team_id"),
            notes=fields.get("notes"),
        )
        s.add(row)
        s.commit()
        s.refresh(row)
        record = row.to_record()
    (feed or get_change_feed()).publish("tasks")
    return record


def update_task(
    database_url: str,
    task_id: str,
    changes: Dict[str, Any],
    *,
    feed: Optional[ChangeFeed] = None,
) -> Task:
    """Apply a partial update and return the full updated record."""
    unknown = set(changes) - set(TASK_WRITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields are not writable: {', '.join(sorted(unknown))}")

    with _backend_errors("update_task", task_id=task_id), get_session(database_url) as s:
        row = s.get(TaskRow, str(task_id))
        if row is None or row.deleted:
            raise TaskNotFoundError(str(task_id))
        for key, value in changes.items():
            setattr(row, key, value)
        s.commit()
        s.refresh(row)
        record = row.to_record()
    (feed or get_change_feed()).publish("tasks")
    return record


def batch_update_sort_order(
    database_url: str,
    updates: Iterable[Tuple[str, int]],
    *,
    feed: Optional[ChangeFeed] = None,
) -> int:
    """Write several sort orders in one transaction; returns rows touched."""
    pending = [(str(task_id), int(order)) for task_id, order in updates]
    if not pending:
        return 0
    touched = 0
    with _backend_errors("batch_update_sort_order", count=len(pending)), get_session(database_url) as s:
        for task_id, order in pending:
            row = s.get(TaskRow, task_id)
            if row is None or row.deleted:
                continue
            row.sort_order = order
            touched += 1
        s.commit()
    (feed or get_change_feed()).publish("tasks")
    return touched


def soft_delete_task(database_url: str, task_id: str, *, feed: Optional[ChangeFeed] = None) -> None:
    with _backend_errors("soft_delete_task", task_id=task_id), get_session(database_url) as s:
        row = s.get(TaskRow, str(task_id))
        if row is None or row.deleted:
            raise TaskNotFoundError(str(task_id))
        row.deleted = True
        s.commit()
    (feed or get_change_feed()).publish("tasks")
