from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from obra_board.board.types import Task


ALL = "all"


@dataclass(frozen=True)
class TaskFilters:
    team_id: Optional[str] = ALL
    lane: Optional[str] = ALL
    search_text: str = ""
    overdue_only: bool = False

    @property
    def active_count(self) -> int:
        return sum(
            [
                _is_set(self.team_id),
                _is_set(self.lane),
                bool(self.search_text.strip()),
                self.overdue_only,
            ]
        )


def _is_set(value: Optional[str]) -> bool:
    return value is not None and value != ALL


def is_overdue(task: Task, now: datetime) -> bool:
    return task.end_at is not None and task.end_at < now and task.lane != "done"


def matches(task: Task, filters: TaskFilters, now: datetime) -> bool:
    if _is_set(filters.team_id) and task.team_id != filters.team_id:
        return False
    if _is_set(filters.lane) and task.lane != filters.lane:
        return False
    needle = filters.search_text.strip().lower()
    if needle and needle not in (task.title or "").lower():
        return False
    if filters.overdue_only and not is_overdue(task, now):
        return False
    return True


def filter_tasks(
    tasks: Iterable[Task], filters: Optional[TaskFilters] = None, *, now: Optional[datetime] = None
) -> List[Task]:
    """Subset of ``tasks`` (input order kept) that passes every active filter."""
    filters = filters or TaskFilters()
    now = now or datetime.now()
    return [t for t in tasks if matches(t, filters, now)]
