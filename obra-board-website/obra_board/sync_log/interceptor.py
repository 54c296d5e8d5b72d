"""Backend wrapper that records every board write in the sync log.

Reads pass straight through. Writes are timed and recorded whether they
succeed or fail; the original exception is always re-raised.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from obra_board.board.backend import TaskBackend
from obra_board.board.changes import ChangeCallback, Unsubscribe
from obra_board.board.types import Task, Team
from obra_board.clock import utcnow

from .config import get_config
from .repo import init_db, log_sync_call

logger = logging.getLogger(__name__)


class LoggedTaskBackend:
    """``TaskBackend`` that records writes of the wrapped backend."""

    def __init__(
        self,
        backend: TaskBackend,
        source: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.backend = backend
        self.source = source
        self.database_url = database_url

        if get_config().enabled:
            try:
                init_db(database_url)
            except Exception:  # noqa: BLE001
                logger.warning("sync_log_init_failed", exc_info=True)

    def _record(
        self,
        operation: str,
        call: Callable[[], Any],
        payload: Dict[str, Any],
        task_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> Any:
        started_at = utcnow()
        started = time.perf_counter()
        success = False
        error_message = None
        error_type = None
        try:
            result = call()
            success = True
            return result
        except Exception as exc:
            error_message = str(exc)
            error_type = type(exc).__name__
            raise
        finally:
            try:
                log_sync_call(
                    operation,
                    payload=payload,
                    success=success,
                    error_message=error_message,
                    error_type=error_type,
                    started_at=started_at,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    task_id=task_id,
                    project_id=project_id,
                    source=self.source,
                    database_url=self.database_url,
                )
            except Exception:  # noqa: BLE001
                # Never let recording break the board.
                logger.warning("sync_log_record_failed", extra={"operation": operation}, exc_info=True)

    # ---------------- writes ----------------

    def create_task(self, fields: Dict[str, Any]) -> Task:
        return self._record(
            "create_task",
            lambda: self.backend.create_task(fields),
            payload=dict(fields),
            project_id=fields.get("project_id"),
        )

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Task:
        return self._record(
            "update_task",
            lambda: self.backend.update_task(task_id, changes),
            payload=dict(changes),
            task_id=task_id,
        )

    def batch_update_sort_order(self, updates: Iterable[Tuple[str, int]]) -> int:
        pending = list(updates)
        return self._record(
            "batch_update_sort_order",
            lambda: self.backend.batch_update_sort_order(pending),
            payload={task_id: order for task_id, order in pending},
        )

    def soft_delete_task(self, task_id: str) -> None:
        self._record(
            "soft_delete_task",
            lambda: self.backend.soft_delete_task(task_id),
            payload={},
            task_id=task_id,
        )

    # ---------------- reads ----------------

    def fetch_tasks(self, project_id: str) -> List[Task]:
        return self.backend.fetch_tasks(project_id)

    def fetch_teams(self, project_id: str) -> List[Team]:
        return self.backend.fetch_teams(project_id)

    def subscribe_to_changes(self, entity: str, on_change: ChangeCallback) -> Unsubscribe:
        return self.backend.subscribe_to_changes(entity, on_change)

    def __getattr__(self, name: str) -> Any:
        # Supplementary queries (by lane, by week, projects) of the wrapped backend.
        return getattr(self.backend, name)
