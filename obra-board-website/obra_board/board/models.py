from __future__ import annotations

import json
import uuid
from typing import List

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import declarative_base, relationship

from obra_board.board.types import (
    DEFAULT_LANE,
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    Project,
    Task,
    Team,
)
from obra_board.clock import utcnow


Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(256), nullable=False)
    address = Column(String(512), nullable=True)
    description = Column(Text, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_record(self) -> Project:
        return Project(
            id=self.id,
            name=self.name,
            address=self.address,
            description=self.description,
            created_at=self.created_at,
        )


class TeamRow(Base):
    __tablename__ = "teams"

    id = Column(String(36), primary_key=True, default=_new_id)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    start_time = Column(String(5), default="07:00", nullable=False)
    end_time = Column(String(5), default="17:00", nullable=False)
    work_days_json = Column(Text, default="[1, 2, 3, 4, 5]", nullable=False)
    deleted = Column(Boolean, default=False, nullable=False)

    def work_days(self) -> List[int]:
        try:
            days = json.loads(self.work_days_json or "[]")
        except ValueError:
            return []
        return [int(d) for d in days if isinstance(d, int)]

    def to_record(self) -> Team:
        return Team(
            id=self.id,
            project_id=self.project_id,
            name=self.name,
            start_time=self.start_time,
            end_time=self.end_time,
            work_days=self.work_days(),
        )


class TaskRow(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_id)
    project_id = Column(String(36), ForeignKey("projects.id"), nullable=False, index=True)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(32), default=DEFAULT_STATUS, nullable=False)
    priority = Column(String(32), default=DEFAULT_PRIORITY, nullable=False)
    lane = Column(String(32), default=DEFAULT_LANE, nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    start_at = Column(DateTime, nullable=True)
    end_at = Column(DateTime, nullable=True)
    team_id = Column(String(36), ForeignKey("teams.id"), nullable=True)
    notes = Column(Text, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    team = relationship(TeamRow, lazy="joined")

    def to_record(self) -> Task:
        return Task(
            id=self.id,
            project_id=self.project_id,
            title=self.title,
            description=self.description,
            status=self.status,
            priority=self.priority,
            lane=self.lane,
            sort_order=int(self.sort_order or 0),
            start_at=self.start_at,
            end_at=self.end_at,
            team_id=self.team_id,
            team_name=self.team.name if self.team is not None else None,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
