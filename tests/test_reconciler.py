import asyncio
from datetime import date, datetime

import pytest

from conftest import FakeBackend, make_task
from obra_board.board.notify import RecordingNotifier
from obra_board.board.reconciler import (
    ABORTED,
    CONFIRMED,
    DRAGGING,
    IDLE,
    NOOP,
    RECONCILING,
    ROLLED_BACK,
    DragReconciler,
    DropEvent,
    LaneLayout,
    WeekLayout,
)
from obra_board.board.store import TaskStore


def _setup(tasks, layout=None, **kwargs):
    backend = FakeBackend(tasks)
    store = TaskStore(tasks)
    notifier = RecordingNotifier()
    reconciler = DragReconciler(store, backend, "p1", layout, notifier=notifier, **kwargs)
    return backend, store, notifier, reconciler


def _three_todo():
    return [make_task("a", "todo", 0), make_task("b", "todo", 1), make_task("c", "todo", 2)]


def test_drop_on_own_position_is_noop():
    backend, store, notifier, reconciler = _setup(_three_todo())
    revision = store.revision

    result = asyncio.run(reconciler.reconcile(DropEvent("b", "todo", 1, "todo", 1)))

    assert result.outcome == NOOP
    assert store.revision == revision
    assert backend.calls == []
    assert notifier.messages == []


def test_cancelled_drop_is_noop():
    backend, store, _, reconciler = _setup(_three_todo())
    reconciler.begin_drag("a")
    assert reconciler.phase == DRAGGING

    result = asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, None, 0)))

    assert result.outcome == NOOP
    assert reconciler.phase == IDLE
    assert backend.calls == []


def test_unknown_task_aborts_silently():
    backend, store, notifier, reconciler = _setup(_three_todo())

    result = asyncio.run(reconciler.reconcile(DropEvent("zzz", "todo", 0, "done", 0)))

    assert result.outcome == ABORTED
    assert backend.calls == []
    assert notifier.messages == []


def test_unknown_lane_aborts():
    backend, _, _, reconciler = _setup(_three_todo())
    result = asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "review", 0)))
    assert result.outcome == ABORTED
    assert backend.calls == []


@pytest.mark.parametrize(
    "lane,status",
    [("done", "done"), ("doing", "in-progress"), ("blocked", "cancelled"), ("todo", "pending"), ("backlog", "pending")],
)
def test_status_derived_from_destination_lane(lane, status):
    task = make_task("x", "todo", 0, status="in-progress") if lane in ("todo", "backlog") else make_task("x", "backlog", 0)
    source = task.lane
    backend, store, _, reconciler = _setup([task])

    asyncio.run(reconciler.reconcile(DropEvent("x", source, 0, lane, 1)))

    assert store.get("x").status == status
    assert store.get("x").lane == lane
    assert backend.tasks["x"].status == status


def test_status_not_sent_when_unchanged():
    backend, store, _, reconciler = _setup([make_task("x", "backlog", 0)])

    asyncio.run(reconciler.reconcile(DropEvent("x", "backlog", 0, "todo", 0)))

    assert backend.calls[0] == ("update_task", ("x", {"lane": "todo"}))


def test_optimistic_update_visible_before_backend_call():
    tasks = _three_todo()
    backend, store, _, reconciler = _setup(tasks)

    plan = reconciler.start(DropEvent("c", "todo", 2, "doing", 0))

    assert plan is not None
    assert backend.calls == []
    assert store.get("c").lane == "doing"
    assert store.get("c").status == "in-progress"
    assert reconciler.phase == RECONCILING

    seen = {}
    backend.on_update = lambda task_id, changes: seen.setdefault("lane", store.get(task_id).lane)
    result = asyncio.run(reconciler.finish(plan))

    assert result.outcome == CONFIRMED
    assert seen["lane"] == "doing"
    assert reconciler.phase == IDLE


def test_todo_to_doing_scenario():
    backend, store, notifier, reconciler = _setup(_three_todo())

    result = asyncio.run(reconciler.reconcile(DropEvent("c", "todo", 2, "doing", 0)))

    assert result.outcome == CONFIRMED
    moved = store.get("c")
    assert (moved.lane, moved.sort_order, moved.status) == ("doing", 0, "in-progress")
    assert [store.get(i).sort_order for i in ("a", "b")] == [0, 1]
    assert backend.calls == [("update_task", ("c", {"lane": "doing", "sort_order": 0, "status": "in-progress"}))]
    assert notifier.messages[-1][0] == "success"
    assert notifier.messages[-1][1] == "Tarefa movida!"


def test_success_notification_can_be_disabled():
    _, _, notifier, reconciler = _setup(_three_todo(), notify_on_success=False)
    asyncio.run(reconciler.reconcile(DropEvent("c", "todo", 2, "doing", 0)))
    assert notifier.messages == []


def test_intra_lane_reorder_renumbers_siblings():
    backend, store, _, reconciler = _setup(_three_todo())

    asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "todo", 2)))

    orders = {t.id: t.sort_order for t in store}
    assert orders == {"b": 0, "c": 1, "a": 2}
    assert backend.call_names() == ["update_task", "batch_update_sort_order"]
    assert sorted(backend.calls[1][1]) == [("b", 0), ("c", 1)]
    assert {t.id: t.sort_order for t in backend.tasks.values()} == orders


def test_move_out_closes_gap_in_source_lane():
    backend, store, _, reconciler = _setup(_three_todo())

    asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "done", 0)))

    assert store.get("b").sort_order == 0
    assert store.get("c").sort_order == 1
    assert dict(backend.calls[1][1]) == {"b": 0, "c": 1}


def test_destination_index_clamped_to_group_end():
    tasks = _three_todo() + [make_task("d", "doing", 0)]
    _, store, _, reconciler = _setup(tasks)

    asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "doing", 9)))

    assert store.get("a").sort_order == 1


def test_rollback_restores_server_state():
    tasks = _three_todo()
    backend, store, notifier, reconciler = _setup(tasks)
    backend.fail_update = True

    result = asyncio.run(reconciler.reconcile(DropEvent("c", "todo", 2, "doing", 0)))

    assert result.outcome == ROLLED_BACK
    assert store.all() == backend.fetch_tasks("p1")
    assert store.get("c").lane == "todo"
    assert notifier.levels() == ["error"]
    assert reconciler.phase == IDLE


def test_rollback_reflects_concurrent_server_changes():
    backend, store, _, reconciler = _setup(_three_todo())
    backend.fail_update = True
    backend.tasks["b"] = backend.tasks["b"].with_changes(title="Renamed elsewhere")

    asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "done", 0)))

    assert store.get("b").title == "Renamed elsewhere"
    assert store.get("a").lane == "todo"


def test_batch_failure_also_rolls_back():
    backend, store, _, reconciler = _setup(_three_todo())
    backend.fail_batch = True

    result = asyncio.run(reconciler.reconcile(DropEvent("a", "todo", 0, "todo", 2)))

    assert result.outcome == ROLLED_BACK
    assert store.all() == backend.fetch_tasks("p1")


def test_failed_refetch_keeps_store_and_notifies_twice():
    backend, store, notifier, reconciler = _setup(_three_todo())
    backend.fail_update = True
    backend.fail_fetch = True

    result = asyncio.run(reconciler.reconcile(DropEvent("c", "todo", 2, "doing", 0)))

    assert result.outcome == ROLLED_BACK
    assert store.get("c").lane == "doing"
    assert notifier.levels() == ["error", "error"]


def test_week_drop_on_cell_sets_one_hour_window():
    anchor = date(2024, 6, 12)  # Wednesday; week starts Monday 2024-06-10
    task = make_task("w", "todo", 0)
    backend, store, _, reconciler = _setup([task], WeekLayout(anchor))

    result = asyncio.run(reconciler.reconcile(DropEvent("w", "backlog", 0, "cell-2-9", 0)))

    assert result.outcome == CONFIRMED
    moved = store.get("w")
    assert moved.start_at == datetime(2024, 6, 12, 9, 0)
    assert moved.end_at == datetime(2024, 6, 12, 10, 0)
    assert moved.lane == "todo"
    assert moved.status == "pending"
    assert backend.calls[0] == (
        "update_task",
        ("w", {"start_at": datetime(2024, 6, 12, 9, 0), "end_at": datetime(2024, 6, 12, 10, 0)}),
    )


def test_week_drop_on_backlog_clears_dates():
    anchor = date(2024, 6, 12)
    task = make_task("w", "doing", 0, start_at=datetime(2024, 6, 10, 8), end_at=datetime(2024, 6, 10, 9))
    backend, store, _, reconciler = _setup([task], WeekLayout(anchor))

    asyncio.run(reconciler.reconcile(DropEvent("w", "cell-0-8", 0, "backlog", 0)))

    assert store.get("w").start_at is None
    assert store.get("w").end_at is None
    assert store.get("w").status == "in-progress"


def test_week_malformed_target_is_noop():
    backend, store, _, reconciler = _setup([make_task("w")], WeekLayout(date(2024, 6, 12)))
    revision = store.revision

    result = asyncio.run(reconciler.reconcile(DropEvent("w", "backlog", 0, "cell-9-x", 0)))

    assert result.outcome == ABORTED
    assert store.revision == revision
    assert backend.calls == []


def test_plan_drop_has_no_side_effects():
    backend, store, _, reconciler = _setup(_three_todo())
    revision = store.revision

    plan = reconciler.plan_drop(DropEvent("c", "todo", 2, "doing", 0))

    assert plan.changes == {"lane": "doing", "sort_order": 0, "status": "in-progress"}
    assert plan.patch == {"c": {"lane": "doing", "sort_order": 0, "status": "in-progress"}}
    assert store.revision == revision
    assert backend.calls == []


def test_lane_layout_describes_lane():
    assert LaneLayout().describe("doing") == "Fazendo"


def test_reorder_with_filter_uses_visible_neighbours():
    tasks = [
        make_task("a", "todo", 0, title="Alpha"),
        make_task("b", "todo", 1, title="Beam x"),
        make_task("c", "todo", 2, title="Column x"),
    ]
    backend, store, _, reconciler = _setup(tasks)

    # Only b and c are shown; b is dragged below c.
    event = DropEvent("b", "todo", 0, "todo", 1, after_id="c")
    result = asyncio.run(reconciler.reconcile(event))

    assert result.outcome == CONFIRMED
    assert [t.id for t in sorted(store, key=lambda t: t.sort_order)] == ["a", "c", "b"]
    assert {t.id: t.sort_order for t in backend.tasks.values()} == {"a": 0, "c": 1, "b": 2}


def test_drop_in_front_of_visible_card_skips_hidden_ones():
    tasks = [
        make_task("a", "todo", 0, title="Alpha"),
        make_task("b", "todo", 1, title="Beam x"),
        make_task("c", "doing", 0, title="Column x"),
    ]
    _, store, _, reconciler = _setup(tasks)

    asyncio.run(reconciler.reconcile(DropEvent("c", "doing", 0, "todo", 0, before_id="b")))

    assert [t.id for t in sorted(store, key=lambda t: t.sort_order) if t.lane == "todo"] == ["a", "c", "b"]
