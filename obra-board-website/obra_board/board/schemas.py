"""Form-level validation for the task dialogs.

Dialogs build one of these models from widget values; a
``pydantic.ValidationError`` is shown inline and the backend is never called.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator, model_validator

from obra_board.board.types import (
    DEFAULT_LANE,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    LANES,
    PRIORITIES,
    STATUSES,
    Task,
)


def _check_choice(value: Optional[str], choices, label: str) -> Optional[str]:
    if value is None:
        return value
    if value not in choices:
        raise ValueError(f"{label} must be one of: {', '.join(choices)}")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class TaskCreate(BaseModel):
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
    notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("description", "team_id", "notes", mode="before")
    @classmethod
    def _blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("status")
    @classmethod
    def _status_choice(cls, v: str) -> str:
        return _check_choice(v, STATUSES, "status")

    @field_validator("priority")
    @classmethod
    def _priority_choice(cls, v: str) -> str:
        return _check_choice(v, PRIORITIES, "priority")

    @field_validator("lane")
    @classmethod
    def _lane_choice(cls, v: str) -> str:
        return _check_choice(v, LANES, "lane")

    @field_validator("sort_order")
    @classmethod
    def _sort_order_positive(cls, v: int) -> int:
        if v < 0:
            raise ValueError("sort_order must be >= 0")
        return v

    @model_validator(mode="after")
    def _window_ordered(self) -> "TaskCreate":
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self


class TaskUpdate(BaseModel):
    """Partial update; only fields explicitly set are sent to the backend."""

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    lane: Optional[str] = None
    sort_order: Optional[int] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    team_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            raise ValueError("title must not be empty")
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("description", "team_id", "notes", mode="before")
    @classmethod
    def _blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("status")
    @classmethod
    def _status_choice(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, STATUSES, "status")

    @field_validator("priority")
    @classmethod
    def _priority_choice(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, PRIORITIES, "priority")

    @field_validator("lane")
    @classmethod
    def _lane_choice(cls, v: Optional[str]) -> Optional[str]:
        return _check_choice(v, LANES, "lane")

    @model_validator(mode="after")
    def _window_ordered(self) -> "TaskUpdate":
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


def changed_fields(task: Task, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Dialog values that differ from ``task``; blank optional text counts as None."""
    changes: Dict[str, Any] = {}
    for key, value in fields.items():
        if key != "title":
            value = _blank_to_none(value)
        if getattr(task, key) != value:
            changes[key] = value
    return changes
