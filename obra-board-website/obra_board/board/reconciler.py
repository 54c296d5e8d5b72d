"""Drag reconciler: turns a drop into an optimistic store patch plus a backend write.

One run per gesture::

    IDLE --begin_drag--> DRAGGING --drop--> RECONCILING --settled--> IDLE

``start(event)`` is the synchronous half: it plans the move and patches the
store before any I/O. ``finish(plan)`` awaits the backend and, on failure,
re-fetches the whole store from the backend instead of undoing fields.
Concurrent runs are not serialised; a rollback re-fetch from an earlier drag
can overwrite a later optimistic move.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from obra_board.board.backend import TaskBackend
from obra_board.board.errors import DropTargetError
from obra_board.board.notify import Notifier, log_notifier
from obra_board.board.partition import OUTSIDE_BUCKET, container_for, parse_drop_target, slot_window, week_days
from obra_board.board.store import TaskStore
from obra_board.board.types import DAY_NAMES, LANE_LABELS, LANES, WORKING_DAYS, Task, slot_label, status_for_lane

logger = logging.getLogger(__name__)

IDLE = "idle"
DRAGGING = "dragging"
RECONCILING = "reconciling"

# Outcomes of one reconciliation run.
NOOP = "noop"
ABORTED = "aborted"
CONFIRMED = "confirmed"
ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class DropEvent:
    """Drag-end as reported by the UI. ``destination_id`` is None when cancelled.

    Indices count the cards the UI showed, which may be a filtered subset of
    the group. ``before_id``/``after_id`` name the shown cards the task landed
    in front of and behind; when given they place the task in the full group.
    """

    task_id: str
    source_id: str
    source_index: int
    destination_id: Optional[str]
    destination_index: int = 0
    before_id: Optional[str] = None
    after_id: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        if self.destination_id is None:
            return True
        return self.destination_id == self.source_id and self.destination_index == self.source_index


@dataclass(frozen=True)
class MovePlan:
    task_id: str
    destination_id: str
    changes: Dict[str, Any]
    sibling_orders: Dict[str, int] = field(default_factory=dict)

    @property
    def patch(self) -> Dict[str, Dict[str, Any]]:
        patch: Dict[str, Dict[str, Any]] = {sid: {"sort_order": order} for sid, order in self.sibling_orders.items()}
        patch[self.task_id] = dict(self.changes)
        return patch


@dataclass(frozen=True)
class ReconcileResult:
    outcome: str
    plan: Optional[MovePlan] = None
    error: Optional[str] = None


class LaneLayout:
    """Simple lane board: containers are the five lanes."""

    derives_status = True

    def container_of(self, task: Task) -> str:
        return task.lane

    def placement(self, container_id: str) -> Dict[str, Any]:
        if container_id not in LANES:
            raise DropTargetError(f"Unknown lane: {container_id!r}")
        return {"lane": container_id}

    def describe(self, container_id: str) -> str:
        return LANE_LABELS.get(container_id, container_id)


class WeekLayout:
    """Weekly time grid: an unscheduled backlog bucket plus day/hour cells."""

    derives_status = False

    def __init__(self, anchor: Union[date, datetime]):
        self.days = week_days(anchor)

    def container_of(self, task: Task) -> str:
        return container_for(task, self.days)

    def placement(self, container_id: str) -> Dict[str, Any]:
        target = parse_drop_target(container_id)
        if target.is_backlog:
            return {"start_at": None, "end_at": None}
        start, end = slot_window(self.days, target.day_index, target.hour)
        return {"start_at": start, "end_at": end}

    def describe(self, container_id: str) -> str:
        target = parse_drop_target(container_id)
        if target.is_backlog:
            return "Backlog"
        day = self.days[target.day_index]
        name = DAY_NAMES[WORKING_DAYS[target.day_index]]
        return f"{name} {day.day:02d}/{day.month:02d} {slot_label(target.hour)}"


Layout = Union[LaneLayout, WeekLayout]


def _ordered_group(tasks: List[Task], layout: Layout, container_id: str, exclude: str) -> List[Task]:
    group = [t for t in tasks if t.id != exclude and layout.container_of(t) == container_id]
    return sorted(group, key=lambda t: t.sort_order)


def _insert_index(group: List[Task], event: DropEvent) -> int:
    """Position in the full ``group`` for a drop next to the shown neighbours."""
    ids = [t.id for t in group]
    if event.before_id in ids:
        return ids.index(event.before_id)
    if event.after_id in ids:
        return ids.index(event.after_id) + 1
    return max(0, min(int(event.destination_index), len(group)))


def plan_move(tasks: List[Task], task: Task, event: DropEvent, layout: Layout) -> Optional[MovePlan]:
    """Pure planning step. Returns None when the move changes nothing.

    ``tasks`` is the full store content in store order; sort orders of the
    source and destination groups are renumbered 0..n-1.
    """
    destination = str(event.destination_id)
    placement = layout.placement(destination)

    target_group = _ordered_group(tasks, layout, destination, exclude=task.id)
    index = _insert_index(target_group, event)
    target_group.insert(index, task)

    changes: Dict[str, Any] = {k: v for k, v in placement.items() if getattr(task, k) != v}
    if task.sort_order != index:
        changes["sort_order"] = index
    if layout.derives_status:
        derived = status_for_lane(placement["lane"])
        if derived != task.status:
            changes["status"] = derived

    sibling_orders: Dict[str, int] = {}
    for position, sibling in enumerate(target_group):
        if sibling.id != task.id and sibling.sort_order != position:
            sibling_orders[sibling.id] = position

    source = layout.container_of(task)
    if source != destination and source != OUTSIDE_BUCKET:
        for position, sibling in enumerate(_ordered_group(tasks, layout, source, exclude=task.id)):
            if sibling.sort_order != position:
                sibling_orders[sibling.id] = position

    if not changes and not sibling_orders:
        return None
    return MovePlan(task_id=task.id, destination_id=destination, changes=changes, sibling_orders=sibling_orders)


class DragReconciler:
    def __init__(
        self,
        store: TaskStore,
        backend: TaskBackend,
        project_id: str,
        layout: Optional[Layout] = None,
        *,
        notifier: Notifier = log_notifier,
        notify_on_success: bool = True,
    ):
        self.store = store
        self.backend = backend
        self.project_id = project_id
        self.layout = layout or LaneLayout()
        self.notifier = notifier
        self.notify_on_success = notify_on_success
        self._dragging: Optional[str] = None
        self._in_flight = 0

    @property
    def phase(self) -> str:
        if self._dragging is not None:
            return DRAGGING
        if self._in_flight:
            return RECONCILING
        return IDLE

    def begin_drag(self, task_id: str) -> None:
        self._dragging = task_id

    def cancel_drag(self) -> None:
        self._dragging = None

    def plan_drop(self, event: DropEvent) -> Optional[MovePlan]:
        if event.is_noop:
            return None
        task = self.store.get(event.task_id)
        if task is None:
            logger.debug("drop_for_unknown_task", extra={"task_id": event.task_id})
            return None
        try:
            return plan_move(self.store.all(), task, event, self.layout)
        except DropTargetError:
            logger.warning("invalid_drop_target", extra={"task_id": event.task_id, "target": event.destination_id})
            return None

    def start(self, event: DropEvent) -> Optional[MovePlan]:
        """Plan and apply optimistically. No I/O happens here."""
        self._dragging = None
        plan = self.plan_drop(event)
        if plan is None:
            return None
        self.store.apply_patch(plan.patch)
        self._in_flight += 1
        logger.debug(
            "optimistic_move",
            extra={"task_id": plan.task_id, "destination": plan.destination_id, "revision": self.store.revision},
        )
        return plan

    async def finish(self, plan: MovePlan) -> ReconcileResult:
        started = time.perf_counter()
        try:
            if plan.changes:
                await asyncio.to_thread(self.backend.update_task, plan.task_id, dict(plan.changes))
            if plan.sibling_orders:
                await asyncio.to_thread(self.backend.batch_update_sort_order, list(plan.sibling_orders.items()))
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "move_failed",
                extra={
                    "task_id": plan.task_id,
                    "destination": plan.destination_id,
                    "error_type": type(exc).__name__,
                },
            )
            self.notifier("error", "Erro ao mover tarefa", str(exc))
            await self.refetch()
            return ReconcileResult(outcome=ROLLED_BACK, plan=plan, error=str(exc))
        finally:
            self._in_flight = max(0, self._in_flight - 1)

        logger.info(
            "move_confirmed",
            extra={
                "task_id": plan.task_id,
                "destination": plan.destination_id,
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        if self.notify_on_success:
            self.notifier("success", "Tarefa movida!", f"Tarefa movida para {self.layout.describe(plan.destination_id)}")
        return ReconcileResult(outcome=CONFIRMED, plan=plan)

    async def reconcile(self, event: DropEvent) -> ReconcileResult:
        """Single entry point for a drag-end event."""
        if event.is_noop:
            self._dragging = None
            return ReconcileResult(outcome=NOOP)
        plan = self.start(event)
        if plan is None:
            return ReconcileResult(outcome=ABORTED)
        return await self.finish(plan)

    async def refetch(self) -> bool:
        """Replace the store with the backend's current data."""
        try:
            tasks = await asyncio.to_thread(self.backend.fetch_tasks, self.project_id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("refetch_failed", extra={"project_id": self.project_id})
            self.notifier("error", "Erro ao carregar dados", str(exc))
            return False
        self.store.replace_all(tasks)
        return True
