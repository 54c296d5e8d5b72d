from __future__ import annotations


class BoardError(Exception):
    """Base class for scheduling board errors."""


class BackendError(BoardError):
    """A backend read or write failed (DB unreachable, constraint violation, ...)."""


class TaskNotFoundError(BoardError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class DropTargetError(BoardError, ValueError):
    """A drop container id could not be decoded."""
