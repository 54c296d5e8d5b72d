"""Board domain records and fixed vocabularies.

Lanes, statuses and priorities are stored as plain strings (the same values
the DB columns hold). ``LANE_STATUS`` is the one place where a lane implies a
business status.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


LANES: Tuple[str, ...] = ("backlog", "todo", "doing", "done", "blocked")
STATUSES: Tuple[str, ...] = ("pending", "in-progress", "done", "cancelled")
PRIORITIES: Tuple[str, ...] = ("low", "medium", "high", "urgent")

DEFAULT_LANE = "backlog"
DEFAULT_STATUS = "pending"
DEFAULT_PRIORITY = "medium"

LANE_STATUS: Dict[str, str] = {
    "backlog": "pending",
    "todo": "pending",
    "doing": "in-progress",
    "done": "done",
    "blocked": "cancelled",
}

LANE_LABELS: Dict[str, str] = {
    "backlog": "Backlog",
    "todo": "A Fazer",
    "doing": "Fazendo",
    "done": "Concluído",
    "blocked": "Bloqueado",
}

STATUS_LABELS: Dict[str, str] = {
    "pending": "Pendente",
    "in-progress": "Em Andamento",
    "done": "Concluída",
    "cancelled": "Cancelada",
}

PRIORITY_LABELS: Dict[str, str] = {
    "low": "Baixa",
    "medium": "Média",
    "high": "Alta",
    "urgent": "Urgente",
}

# Weekly grid: Monday-based weeks, Monday..Saturday, 07:00-19:00.
WORK_HOURS_START = 7
WORK_HOURS_END = 19
WORKING_DAYS: Tuple[int, ...] = (1, 2, 3, 4, 5, 6)  # ISO weekday numbers
DAY_NAMES: Dict[int, str] = {1: "Seg", 2: "Ter", 3: "Qua", 4: "Qui", 5: "Sex", 6: "Sáb"}
TIME_SLOTS: Tuple[int, ...] = tuple(range(WORK_HOURS_START, WORK_HOURS_END))


def status_for_lane(lane: str) -> str:
    """Business status implied by placing a task in ``lane``."""
    try:
        return LANE_STATUS[lane]
    except KeyError:
        raise ValueError(f"Unknown lane: {lane!r}") from None


def slot_label(hour: int) -> str:
    return f"{hour:02d}:00"


@dataclass(frozen=True)
class Team:
    id: str
    project_id: str
    name: str
    start_time: str = "07:00"
    end_time: str = "17:00"
    work_days: List[int] = field(default_factory=lambda: [1, 2, 3, 4, 5])


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    address: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Task:
    id: str
    project_id: str
    title: str
    description: Optional[str] = None
    status: str = DEFAULT_STATUS
    priority: str = DEFAULT_PRIORITY
    lane: str = DEFAULT_LANE
    sort_order: int = 0
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def with_changes(self, **changes: Any) -> "Task":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Task":
        known = {k: v for k, v in raw.items() if k in cls.__dataclass_fields__}
        return cls(**known)
