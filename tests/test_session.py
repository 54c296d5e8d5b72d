import gc
from datetime import date, datetime

import pytest
from pydantic import ValidationError

from conftest import FakeBackend, make_task
from obra_board.board.filters import ALL
from obra_board.board.notify import RecordingNotifier
from obra_board.board.session import BoardSession
from obra_board.board.types import Team

NOW = datetime(2024, 6, 12, 12, 0)


def _open(tasks=(), teams=()):
    backend = FakeBackend(tasks, teams)
    notifier = RecordingNotifier()
    board = BoardSession(backend, "p1", notifier=notifier).open()
    return backend, notifier, board


def test_open_fetches_and_subscribes():
    team = Team(id="tm1", project_id="p1", name="Elétrica")
    backend, _, board = _open([make_task("a")], [team])

    assert [t.id for t in board.store] == ["a"]
    assert board.teams == [team]
    assert board.is_subscribed
    assert backend.feed.subscriber_count("tasks") == 1


def test_change_feed_triggers_refetch():
    backend, _, board = _open([make_task("a")])
    backend.tasks["b"] = make_task("b", "done")

    backend.feed.publish("tasks")

    assert board.store.get("b") is not None


def test_close_unsubscribes():
    backend, _, board = _open()
    board.close()
    board.close()

    assert not board.is_subscribed
    assert backend.feed.subscriber_count("tasks") == 0


def test_failed_refresh_keeps_store_and_notifies():
    backend, notifier, board = _open([make_task("a")])
    backend.fail_fetch = True
    backend.tasks.clear()

    assert board.refresh() is False
    assert board.store.get("a") is not None
    assert notifier.messages[-1][:2] == ("error", "Erro ao carregar dados")


def test_create_task_validates_then_refreshes():
    backend, notifier, board = _open()

    task = board.create_task(title="  Chapisco ", lane="todo")

    assert task.title == "Chapisco"
    assert task.project_id == "p1"
    assert board.store.get(task.id) is not None
    assert notifier.messages[-1] == ("success", "Tarefa criada!", "Chapisco")


def test_create_task_with_blank_title_never_calls_backend():
    backend, _, board = _open()
    with pytest.raises(ValidationError):
        board.create_task(title=" ")
    assert "create_task" not in backend.call_names()


def test_edit_task_sends_only_changes():
    backend, notifier, board = _open([make_task("a")])

    task = board.edit_task("a", priority="high")

    assert task.priority == "high"
    assert backend.calls[-2] == ("update_task", ("a", {"priority": "high"}))
    assert board.store.get("a").priority == "high"
    assert notifier.levels()[-1] == "success"


def test_edit_without_changes_is_skipped():
    backend, notifier, board = _open([make_task("a")])

    assert board.edit_task("a") == board.store.get("a")
    assert "update_task" not in backend.call_names()
    assert notifier.messages == []


def test_edit_failure_notifies_and_refreshes():
    backend, notifier, board = _open([make_task("a")])
    backend.fail_update = True

    assert board.edit_task("a", title="Novo") is None
    assert notifier.messages[-1][:2] == ("error", "Erro ao salvar tarefa")
    assert board.store.get("a").title == "Task a"


def test_delete_task():
    backend, notifier, board = _open([make_task("a"), make_task("b", sort_order=1)])

    assert board.delete_task("a") is True
    assert [t.id for t in board.store] == ["b"]
    assert notifier.messages[-1][:2] == ("success", "Tarefa excluída")


def test_delete_missing_task_notifies():
    _, notifier, board = _open()
    assert board.delete_task("zzz") is False
    assert notifier.levels() == ["error"]


def test_filters_drive_lanes_and_grid():
    tasks = [
        make_task("a", "todo", title="Reboco", team_id="tm1"),
        make_task("b", "doing", title="Piso", start_at=datetime(2024, 6, 10, 8)),
        make_task("c", "done", title="Reboco fino"),
    ]
    _, _, board = _open(tasks)

    board.set_filters(search_text="reboco")
    lanes = board.lanes(NOW)
    assert [t.id for t in lanes["todo"]] == ["a"]
    assert [t.id for t in lanes["done"]] == ["c"]
    assert lanes["doing"] == []

    board.set_filters(search_text="", team_id=ALL)
    grid = board.week_grid(date(2024, 6, 12), NOW)
    assert [t.id for t in grid.tasks_in("cell-0-8")] == ["b"]
    assert sorted(t.id for t in grid.backlog) == ["a", "c"]

    board.set_filters(lane="done")
    board.clear_filters()
    assert board.filters.active_count == 0


def test_reconcilers_share_store_and_notifier():
    _, notifier, board = _open([make_task("a")])
    assert board.lane_reconciler().store is board.store
    assert board.week_reconciler(date(2024, 6, 12)).notifier is notifier


def test_dropped_session_stops_receiving_changes():
    backend = FakeBackend([make_task("a")])
    board = BoardSession(backend, "p1", notifier=RecordingNotifier()).open()
    assert backend.feed.subscriber_count("tasks") == 1

    del board
    gc.collect()
    fetches = backend.call_names().count("fetch_tasks")

    assert backend.feed.publish("tasks") == 0
    assert backend.call_names().count("fetch_tasks") == fetches
    assert backend.feed.subscriber_count("tasks") == 0
