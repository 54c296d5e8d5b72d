"""Sync log database models."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, Float, Index, String, Text
from sqlalchemy.orm import declarative_base

from obra_board.clock import utcnow

Base = declarative_base()


def _generate_id() -> str:
    """Generate a unique ID for log entries."""
    return str(uuid.uuid4())


class SyncCall(Base):
    """One backend write issued by the board.

    Drag moves, sort-order batches and the create/edit/delete dialogs all end
    up here, successful or not.
    """

    __tablename__ = "board_sync_calls"

    id = Column(String(36), primary_key=True, default=_generate_id)

    operation = Column(String(64), nullable=False, index=True)  # e.g. "update_task"
    task_id = Column(String(36), nullable=True, index=True)
    project_id = Column(String(36), nullable=True, index=True)

    payload_json = Column(Text, nullable=True)  # JSON-serialized arguments

    success = Column(Boolean, nullable=False, default=False, index=True)
    error_message = Column(Text, nullable=True)
    error_type = Column(String(128), nullable=True)

    started_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    duration_ms = Column(Float, nullable=True)

    source = Column(String(64), nullable=True, index=True)  # e.g. "kanban", "weekly"

    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_board_sync_calls_started_success", "started_at", "success"),
    )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "operation": self.operation,
            "task_id": self.task_id,
            "project_id": self.project_id,
            "payload_json": self.payload_json,
            "success": self.success,
            "error_message": self.error_message,
            "error_type": self.error_type,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "duration_ms": self.duration_ms,
            "source": self.source,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
