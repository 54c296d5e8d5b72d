from typing import Any, Dict, Iterable, List, Tuple

import pytest

from obra_board.board.backend import SqlTaskBackend
from obra_board.board.changes import ChangeFeed
from obra_board.board.errors import BackendError, TaskNotFoundError
from obra_board.board.types import Task, Team


class FakeBackend:
    """In-memory TaskBackend that records every call."""

    def __init__(self, tasks: Iterable[Task] = (), teams: Iterable[Team] = ()):
        self.tasks: Dict[str, Task] = {t.id: t for t in tasks}
        self.teams: List[Team] = list(teams)
        self.calls: List[Tuple[str, Any]] = []
        self.fail_update = False
        self.fail_batch = False
        self.fail_fetch = False
        self.on_update = None
        self.feed = ChangeFeed()

    def fetch_tasks(self, project_id: str) -> List[Task]:
        self.calls.append(("fetch_tasks", project_id))
        if self.fail_fetch:
            raise BackendError("fetch failed")
        return [t for t in self.tasks.values() if t.project_id == project_id]

    def fetch_teams(self, project_id: str) -> List[Team]:
        return [t for t in self.teams if t.project_id == project_id]

    def create_task(self, fields: Dict[str, Any]) -> Task:
        self.calls.append(("create_task", dict(fields)))
        task = Task(id=f"t{len(self.tasks) + 1}", **fields)
        self.tasks[task.id] = task
        return task

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Task:
        self.calls.append(("update_task", (task_id, dict(changes))))
        if self.on_update is not None:
            self.on_update(task_id, changes)
        if self.fail_update:
            raise BackendError("update rejected")
        if task_id not in self.tasks:
            raise TaskNotFoundError(task_id)
        self.tasks[task_id] = self.tasks[task_id].with_changes(**changes)
        return self.tasks[task_id]

    def batch_update_sort_order(self, updates: Iterable[Tuple[str, int]]) -> int:
        pending = list(updates)
        self.calls.append(("batch_update_sort_order", pending))
        if self.fail_batch:
            raise BackendError("batch rejected")
        for task_id, order in pending:
            self.tasks[task_id] = self.tasks[task_id].with_changes(sort_order=order)
        return len(pending)

    def soft_delete_task(self, task_id: str) -> None:
        self.calls.append(("soft_delete_task", task_id))
        if task_id not in self.tasks:
            raise TaskNotFoundError(task_id)
        del self.tasks[task_id]

    def subscribe_to_changes(self, entity, on_change):
        return self.feed.subscribe(entity, on_change)

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


def make_task(task_id: str, lane: str = "todo", sort_order: int = 0, **fields: Any) -> Task:
    fields.setdefault("project_id", "p1")
    fields.setdefault("title", f"Task {task_id}")
    fields.setdefault("status", {"doing": "in-progress", "done": "done", "blocked": "cancelled"}.get(lane, "pending"))
    return Task(id=task_id, lane=lane, sort_order=sort_order, **fields)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{(tmp_path / 'board.db').as_posix()}"


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def sql_backend(db_url, feed):
    return SqlTaskBackend(db_url, feed=feed).init()


@pytest.fixture
def project(sql_backend):
    return sql_backend.create_project("Obra Teste", address="Rua 1")
