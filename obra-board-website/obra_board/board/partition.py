"""Grouping of the filtered view into lanes or weekly-grid cells.

Container ids double as drop targets: a lane board uses the lane value
itself; the weekly grid uses ``"backlog"`` and ``cell-{day_index}-{hour}``
where ``day_index`` counts working days from Monday (0..5).
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Optional, Tuple, Union

from obra_board.board.errors import DropTargetError
from obra_board.board.types import LANES, TIME_SLOTS, WORKING_DAYS, Task


BACKLOG_BUCKET = "backlog"
OUTSIDE_BUCKET = "outside"
CELL_PREFIX = "cell"


def _by_sort_order(tasks: Iterable[Task]) -> List[Task]:
    # sorted() is stable, so equal sort orders keep store order.
    return sorted(tasks, key=lambda t: t.sort_order)


def partition_by_lane(tasks: Iterable[Task]) -> Dict[str, List[Task]]:
    grouped: Dict[str, List[Task]] = {lane: [] for lane in LANES}
    for task in tasks:
        grouped.setdefault(task.lane, []).append(task)
    return {lane: _by_sort_order(items) for lane, items in grouped.items()}


# ---------------- Weekly grid ----------------


def week_start_for(anchor: Union[date, datetime]) -> date:
    """Monday of the week containing ``anchor``."""
    if isinstance(anchor, datetime):
        anchor = anchor.date()
    return anchor - timedelta(days=anchor.weekday())


def week_days(anchor: Union[date, datetime]) -> List[date]:
    """Dates of the working days (Mon..Sat) of ``anchor``'s week."""
    monday = week_start_for(anchor)
    return [monday + timedelta(days=iso_day - 1) for iso_day in WORKING_DAYS]


def week_bounds(anchor: Union[date, datetime]) -> Tuple[datetime, datetime]:
    days = week_days(anchor)
    start = datetime.combine(days[0], time.min)
    end = datetime.combine(days[-1], time.max)
    return start, end


def cell_id(day_index: int, hour: int) -> str:
    return f"{CELL_PREFIX}-{day_index}-{hour}"


@dataclass(frozen=True)
class DropTarget:
    container_id: str
    day_index: Optional[int] = None
    hour: Optional[int] = None

    @property
    def is_backlog(self) -> bool:
        return self.day_index is None


def parse_drop_target(container_id: str) -> DropTarget:
    if container_id == BACKLOG_BUCKET:
        return DropTarget(container_id=container_id)

    parts = str(container_id).split("-")
    if len(parts) != 3 or parts[0] != CELL_PREFIX:
        raise DropTargetError(f"Unrecognised drop target: {container_id!r}")
    try:
        day_index, hour = int(parts[1]), int(parts[2])
    except ValueError:
        raise DropTargetError(f"Unrecognised drop target: {container_id!r}") from None
    if not 0 <= day_index < len(WORKING_DAYS) or not 0 <= hour <= 23:
        raise DropTargetError(f"Drop target out of range: {container_id!r}")
    return DropTarget(container_id=container_id, day_index=day_index, hour=hour)


def slot_window(days: List[date], day_index: int, hour: int) -> Tuple[datetime, datetime]:
    """One-hour window starting at ``hour``:00 on ``days[day_index]``."""
    start = datetime.combine(days[day_index], time(hour=hour))
    return start, start + timedelta(hours=1)


def container_for(task: Task, days: List[date]) -> str:
    """Grid container a task currently sits in."""
    if task.start_at is None:
        return BACKLOG_BUCKET
    start = task.start_at
    try:
        day_index = days.index(start.date())
    except ValueError:
        return OUTSIDE_BUCKET
    if start.hour not in TIME_SLOTS:
        return OUTSIDE_BUCKET
    return cell_id(day_index, start.hour)


@dataclass
class WeekGrid:
    days: List[date]
    backlog: List[Task] = field(default_factory=list)
    cells: Dict[str, List[Task]] = field(default_factory=dict)
    outside: List[Task] = field(default_factory=list)

    def tasks_in(self, container_id: str) -> List[Task]:
        if container_id == BACKLOG_BUCKET:
            return self.backlog
        if container_id == OUTSIDE_BUCKET:
            return self.outside
        return self.cells.get(container_id, [])

    def groups(self) -> Dict[str, List[Task]]:
        merged = {BACKLOG_BUCKET: self.backlog}
        merged.update(self.cells)
        merged[OUTSIDE_BUCKET] = self.outside
        return merged


def partition_by_cell(tasks: Iterable[Task], anchor: Union[date, datetime]) -> WeekGrid:
    days = week_days(anchor)
    grid = WeekGrid(
        days=days,
        cells={cell_id(d, h): [] for d in range(len(days)) for h in TIME_SLOTS},
    )
    for task in tasks:
        key = container_for(task, days)
        if key == BACKLOG_BUCKET:
            grid.backlog.append(task)
        elif key == OUTSIDE_BUCKET:
            grid.outside.append(task)
        else:
            grid.cells[key].append(task)

    grid.backlog = _by_sort_order(grid.backlog)
    grid.outside = _by_sort_order(grid.outside)
    grid.cells = {key: _by_sort_order(items) for key, items in grid.cells.items()}
    return grid
