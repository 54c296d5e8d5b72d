"""Bridge between ``streamlit-sortables`` and the drag reconciler.

``sort_items(..., multi_containers=True)`` takes and returns a list of
``{"header": str, "items": [str, ...]}`` dicts. Items are plain strings, so
each card gets a unique label and the page keeps the label -> task id map.
The returned layout is diffed against the rendered one to recover the single
drop that happened.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from obra_board.board.reconciler import DropEvent
from obra_board.board.types import PRIORITY_LABELS, Task


@dataclass
class BoardLayout:
    container_ids: List[str]
    containers: List[Dict[str, object]]
    label_to_id: Dict[str, str] = field(default_factory=dict)


def card_label(task: Task) -> str:
    prio = PRIORITY_LABELS.get(task.priority, task.priority)
    team = f" · {task.team_name}" if task.team_name else ""
    return f"{task.title} [{prio}]{team} #{task.id[:8]}"


def build_layout(
    groups: Sequence[Tuple[str, str, Sequence[Task]]],
    labeler: Callable[[Task], str] = card_label,
) -> BoardLayout:
    """``groups`` is ``(container_id, header, tasks)`` in display order."""
    layout = BoardLayout(container_ids=[], containers=[])
    for container_id, header, tasks in groups:
        items: List[str] = []
        for task in tasks:
            label = labeler(task)
            if label in layout.label_to_id:
                label = f"{label} ({task.id})"
            layout.label_to_id[label] = task.id
            items.append(label)
        layout.container_ids.append(container_id)
        layout.containers.append({"header": header, "items": items})
    return layout


def _positions(containers: Sequence[Dict[str, object]]) -> Dict[str, Tuple[int, int]]:
    positions: Dict[str, Tuple[int, int]] = {}
    for c_idx, container in enumerate(containers):
        for i_idx, label in enumerate(container.get("items") or []):
            positions[str(label)] = (c_idx, i_idx)
    return positions


def _moved_within(before: List[str], after: List[str]) -> Optional[str]:
    best: Optional[str] = None
    best_shift = 0
    for label in before:
        rest_before = [x for x in before if x != label]
        rest_after = [x for x in after if x != label]
        if rest_before != rest_after or label not in after:
            continue
        shift = abs(after.index(label) - before.index(label))
        if shift > best_shift:
            best, best_shift = label, shift
    return best


def diff_layout(layout: BoardLayout, returned: Optional[Sequence[Dict[str, object]]]) -> Optional[DropEvent]:
    """Drop event that turns ``layout`` into ``returned``; None if nothing moved."""
    if not returned or len(returned) != len(layout.containers):
        return None

    before = _positions(layout.containers)
    after = _positions(returned)

    moved: Optional[str] = None
    for label, (c_idx, _) in after.items():
        if label in before and before[label][0] != c_idx:
            moved = label
            break

    if moved is None:
        for old, new in zip(layout.containers, returned):
            old_items = [str(x) for x in old.get("items") or []]
            new_items = [str(x) for x in new.get("items") or []]
            if old_items != new_items:
                moved = _moved_within(old_items, new_items)
                break

    if moved is None or moved not in layout.label_to_id:
        return None

    src_c, src_i = before[moved]
    dst_c, dst_i = after[moved]
    shown = [str(x) for x in returned[dst_c].get("items") or []]
    return DropEvent(
        task_id=layout.label_to_id[moved],
        source_id=layout.container_ids[src_c],
        source_index=src_i,
        destination_id=layout.container_ids[dst_c],
        destination_index=dst_i,
        before_id=layout.label_to_id.get(shown[dst_i + 1]) if dst_i + 1 < len(shown) else None,
        after_id=layout.label_to_id.get(shown[dst_i - 1]) if dst_i > 0 else None,
    )
