"""One open board: store, filters, change subscription and the task dialogs.

Every path except a drag ends in ``refresh()``, which replaces the store with
a fresh fetch. Change-feed callbacks run in the publishing thread.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from obra_board.board.backend import TaskBackend
from obra_board.board.changes import Unsubscribe
from obra_board.board.errors import BoardError
from obra_board.board.filters import TaskFilters, filter_tasks
from obra_board.board.notify import Notifier, log_notifier
from obra_board.board.partition import WeekGrid, partition_by_cell, partition_by_lane
from obra_board.board.reconciler import DragReconciler, LaneLayout, WeekLayout
from obra_board.board.schemas import TaskCreate, TaskUpdate
from obra_board.board.store import TaskStore
from obra_board.board.types import Task, Team

logger = logging.getLogger(__name__)


class BoardSession:
    def __init__(
        self,
        backend: TaskBackend,
        project_id: str,
        *,
        notifier: Notifier = log_notifier,
        notify_on_success: bool = True,
    ):
        self.backend = backend
        self.project_id = project_id
        self.notifier = notifier
        self.notify_on_success = notify_on_success
        self.store = TaskStore()
        self.filters = TaskFilters()
        self.teams: List[Team] = []
        self._unsubscribe: Optional[Unsubscribe] = None

    # ---------------- lifecycle ----------------

    def open(self) -> "BoardSession":
        self.refresh()
        if self._unsubscribe is None:
            self._unsubscribe = self.backend.subscribe_to_changes("tasks", self._on_change)
        return self

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    @property
    def is_subscribed(self) -> bool:
        return self._unsubscribe is not None

    def _on_change(self) -> None:
        logger.debug("change_received", extra={"project_id": self.project_id, "revision": self.store.revision})
        self.refresh()

    def refresh(self) -> bool:
        """Replace the store (and team list) with the backend's current data."""
        try:
            tasks = self.backend.fetch_tasks(self.project_id)
            teams = self.backend.fetch_teams(self.project_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("refresh_failed", extra={"project_id": self.project_id})
            self.notifier("error", "Erro ao carregar dados", str(exc))
            return False
        self.store.replace_all(tasks)
        self.teams = list(teams)
        return True

    # ---------------- derived views ----------------

    def set_filters(self, **values: Any) -> TaskFilters:
        self.filters = replace(self.filters, **values)
        return self.filters

    def clear_filters(self) -> None:
        self.filters = TaskFilters()

    def visible_tasks(self, now: Optional[datetime] = None) -> List[Task]:
        return filter_tasks(self.store.all(), self.filters, now=now)

    def lanes(self, now: Optional[datetime] = None) -> Dict[str, List[Task]]:
        return partition_by_lane(self.visible_tasks(now))

    def week_grid(self, anchor: Union[date, datetime], now: Optional[datetime] = None) -> WeekGrid:
        return partition_by_cell(self.visible_tasks(now), anchor)

    def lane_reconciler(self) -> DragReconciler:
        return self._reconciler(LaneLayout())

    def week_reconciler(self, anchor: Union[date, datetime]) -> DragReconciler:
        return self._reconciler(WeekLayout(anchor))

    def _reconciler(self, layout) -> DragReconciler:
        return DragReconciler(
            self.store,
            self.backend,
            self.project_id,
            layout,
            notifier=self.notifier,
            notify_on_success=self.notify_on_success,
        )

    # ---------------- dialogs ----------------

    def create_task(self, **fields: Any) -> Optional[Task]:
        """Validate, create, refresh. ``pydantic.ValidationError`` propagates."""
        data = TaskCreate(project_id=self.project_id, **fields)
        try:
            task = self.backend.create_task(data.model_dump())
        except BoardError as exc:
            logger.error("create_task_failed", extra={"project_id": self.project_id, "error_type": type(exc).__name__})
            self.notifier("error", "Erro ao criar tarefa", str(exc))
            return None
        self.refresh()
        self.notifier("success", "Tarefa criada!", task.title)
        return task

    def edit_task(self, task_id: str, **changes: Any) -> Optional[Task]:
        """Send only the fields given. ``pydantic.ValidationError`` propagates."""
        payload = TaskUpdate(**changes).changes()
        if not payload:
            return self.store.get(task_id)
        try:
            task = self.backend.update_task(task_id, payload)
        except BoardError as exc:
            logger.error("edit_task_failed", extra={"task_id": task_id, "error_type": type(exc).__name__})
            self.notifier("error", "Erro ao salvar tarefa", str(exc))
            self.refresh()
            return None
        self.refresh()
        self.notifier("success", "Tarefa atualizada!", task.title)
        return task

    def delete_task(self, task_id: str) -> bool:
        try:
            self.backend.soft_delete_task(task_id)
        except BoardError as exc:
            logger.error("delete_task_failed", extra={"task_id": task_id, "error_type": type(exc).__name__})
            self.notifier("error", "Erro ao excluir tarefa", str(exc))
            self.refresh()
            return False
        self.refresh()
        self.notifier("success", "Tarefa excluída", "")
        return True
