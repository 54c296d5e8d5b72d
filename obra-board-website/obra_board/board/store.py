from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from obra_board.board.types import Task


class TaskStore:
    """Ordered-by-arrival collection of one project's tasks, keyed by id.

    Two ways in: ``replace_all`` (fetch results) and ``apply_patch``
    (optimistic moves). ``revision`` increases on every mutation.
    """

    def __init__(self, tasks: Iterable[Task] = ()):
        self._order: List[str] = []
        self._tasks: Dict[str, Task] = {}
        self.revision = 0
        self.replace_all(tasks)

    def replace_all(self, tasks: Iterable[Task]) -> None:
        order: List[str] = []
        by_id: Dict[str, Task] = {}
        for task in tasks:
            if task.id not in by_id:
                order.append(task.id)
            by_id[task.id] = task
        # Swap both references at once so readers never see a half-built store.
        self._order, self._tasks = order, by_id
        self.revision += 1

    def apply_patch(self, patch: Mapping[str, Mapping[str, Any]]) -> List[Task]:
        """Apply field changes per task id; unknown ids are skipped.

        Returns the updated tasks.
        """
        updated: List[Task] = []
        tasks = dict(self._tasks)
        for task_id, changes in patch.items():
            current = tasks.get(task_id)
            if current is None or not changes:
                continue
            tasks[task_id] = current.with_changes(**dict(changes))
            updated.append(tasks[task_id])
        if updated:
            self._tasks = tasks
            self.revision += 1
        return updated

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def all(self) -> List[Task]:
        tasks = self._tasks
        return [tasks[i] for i in self._order if i in tasks]

    def __iter__(self) -> Iterator[Task]:
        return iter(self.all())

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks
