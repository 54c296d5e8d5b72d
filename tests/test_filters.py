from datetime import datetime, timedelta

import pytest

from conftest import make_task
from obra_board.board.filters import ALL, TaskFilters, filter_tasks, is_overdue

NOW = datetime(2024, 6, 12, 12, 0)
PAST = NOW - timedelta(days=1)
FUTURE = NOW + timedelta(days=1)


@pytest.mark.parametrize(
    "task,filters,expected",
    [
        (make_task("a", "todo", team_id="t1"), TaskFilters(), True),
        (make_task("a", "todo", team_id="t1"), TaskFilters(team_id="t1"), True),
        (make_task("a", "todo", team_id="t1"), TaskFilters(team_id="t2"), False),
        (make_task("a", "todo", team_id=None), TaskFilters(team_id="t1"), False),
        (make_task("a", "todo"), TaskFilters(team_id=None, lane=None), True),
        (make_task("a", "todo"), TaskFilters(lane="todo"), True),
        (make_task("a", "todo"), TaskFilters(lane="done"), False),
        (make_task("a", title="Concretagem da laje"), TaskFilters(search_text="LAJE"), True),
        (make_task("a", title="Concretagem da laje"), TaskFilters(search_text="  laje "), True),
        (make_task("a", title="Concretagem da laje"), TaskFilters(search_text="piso"), False),
        (make_task("a", "todo", end_at=PAST), TaskFilters(overdue_only=True), True),
        (make_task("a", "done", end_at=PAST), TaskFilters(overdue_only=True), False),
        (make_task("a", "todo", end_at=FUTURE), TaskFilters(overdue_only=True), False),
        (make_task("a", "todo", end_at=None), TaskFilters(overdue_only=True), False),
        (make_task("a", "blocked", end_at=PAST, team_id="t1", title="Laje"),
         TaskFilters(team_id="t1", lane="blocked", search_text="laje", overdue_only=True), True),
        (make_task("a", "blocked", end_at=PAST, team_id="t1", title="Laje"),
         TaskFilters(team_id="t2", lane="blocked", search_text="laje", overdue_only=True), False),
    ],
)
def test_filter_table(task, filters, expected):
    assert (filter_tasks([task], filters, now=NOW) == [task]) is expected


def test_filter_keeps_input_order():
    tasks = [make_task("c"), make_task("a"), make_task("b", "done")]
    assert [t.id for t in filter_tasks(tasks, TaskFilters(lane="todo"), now=NOW)] == ["c", "a"]


def test_is_overdue_excludes_done_lane():
    assert is_overdue(make_task("a", "doing", end_at=PAST), NOW)
    assert not is_overdue(make_task("a", "done", end_at=PAST), NOW)


def test_active_count():
    assert TaskFilters().active_count == 0
    assert TaskFilters(team_id=ALL, lane="todo", search_text=" x ", overdue_only=True).active_count == 3
