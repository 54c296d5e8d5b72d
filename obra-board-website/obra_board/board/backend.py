from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from obra_board.board import repo
from obra_board.board.changes import ChangeCallback, ChangeFeed, Unsubscribe, get_change_feed
from obra_board.board.types import Project, Task, Team


class TaskBackend(Protocol):
    """What the board needs from the backend. All calls are synchronous."""

    def fetch_tasks(self, project_id: str) -> List[Task]: ...

    def fetch_teams(self, project_id: str) -> List[Team]: ...

    def create_task(self, fields: Dict[str, Any]) -> Task: ...

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Task: ...

    def batch_update_sort_order(self, updates: Iterable[Tuple[str, int]]) -> int: ...

    def soft_delete_task(self, task_id: str) -> None: ...

    def subscribe_to_changes(self, entity: str, on_change: ChangeCallback) -> Unsubscribe: ...


class SqlTaskBackend:
    """``TaskBackend`` over the SQLAlchemy repository."""

    def __init__(self, database_url: str, *, feed: Optional[ChangeFeed] = None):
        self.database_url = database_url
        self.feed = feed or get_change_feed()

    def init(self) -> "SqlTaskBackend":
        repo.init_db(self.database_url)
        return self

    def list_projects(self) -> List[Project]:
        return repo.list_projects(self.database_url)

    def create_project(self, name: str, address: Optional[str] = None, description: Optional[str] = None) -> Project:
        return repo.create_project(
            self.database_url, name=name, address=address, description=description, feed=self.feed
        )

    def create_team(self, project_id: str, name: str, **window: Any) -> Team:
        return repo.create_team(self.database_url, project_id=project_id, name=name, feed=self.feed, **window)

    def fetch_tasks(self, project_id: str) -> List[Task]:
        return repo.fetch_tasks(self.database_url, project_id)

    def fetch_tasks_by_lane(self, project_id: str, lane: str) -> List[Task]:
        return repo.fetch_tasks_by_lane(self.database_url, project_id, lane)

    def fetch_tasks_by_week(self, project_id: str, week_start: datetime, week_end: datetime) -> List[Task]:
        return repo.fetch_tasks_by_week(self.database_url, project_id, week_start, week_end)

    def fetch_teams(self, project_id: str) -> List[Team]:
        return repo.fetch_teams(self.database_url, project_id)

    def create_task(self, fields: Dict[str, Any]) -> Task:
        return repo.create_task(self.database_url, fields, feed=self.feed)

    def update_task(self, task_id: str, changes: Dict[str, Any]) -> Task:
        return repo.update_task(self.database_url, task_id, changes, feed=self.feed)

    def batch_update_sort_order(self, updates: Iterable[Tuple[str, int]]) -> int:
        return repo.batch_update_sort_order(self.database_url, updates, feed=self.feed)

    def soft_delete_task(self, task_id: str) -> None:
        repo.soft_delete_task(self.database_url, task_id, feed=self.feed)

    def subscribe_to_changes(self, entity: str, on_change: ChangeCallback) -> Unsubscribe:
        return self.feed.subscribe(entity, on_change)
