from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from obra_board.board.backend import SqlTaskBackend
from obra_board.board.partition import week_days
from obra_board.board.types import LANE_STATUS, Project

logger = logging.getLogger(__name__)

DEMO_PROJECT = "Residencial Jardim das Flores"

DEMO_TEAMS = [
    ("Alvenaria", "07:00", "17:00", [1, 2, 3, 4, 5, 6]),
    ("Elétrica", "08:00", "17:00", [1, 2, 3, 4, 5]),
    ("Hidráulica", "07:00", "16:00", [1, 2, 3, 4, 5]),
]

# (title, lane, priority, team index, (day_index, hour) or None)
DEMO_TASKS = [
    ("Locação da obra", "done", "high", 0, (0, 7)),
    ("Fundação bloco A", "doing", "urgent", 0, (0, 8)),
    ("Levantar paredes térreo", "todo", "high", 0, (1, 7)),
    ("Passagem de eletrodutos", "todo", "medium", 1, (2, 9)),
    ("Quadro de distribuição", "backlog", "medium", 1, None),
    ("Tubulação de esgoto", "doing", "high", 2, (3, 10)),
    ("Caixa d'água", "blocked", "low", 2, None),
    ("Orçamento de acabamento", "backlog", "low", None, None),
]


def seed_demo(backend: SqlTaskBackend, today: Optional[date] = None) -> Optional[Project]:
    """Create one demo obra with teams and tasks if the DB has no projects."""
    if backend.list_projects():
        return None

    project = backend.create_project(DEMO_PROJECT, address="Rua das Acácias, 120")
    teams = [
        backend.create_team(project.id, name, start_time=start, end_time=end, work_days=days)
        for name, start, end, days in DEMO_TEAMS
    ]
    days = week_days(today or date.today())
    per_lane: dict = {}
    for title, lane, priority, team_idx, slot in DEMO_TASKS:
        fields = {
            "project_id": project.id,
            "title": title,
            "lane": lane,
            "status": LANE_STATUS[lane],
            "priority": priority,
            "sort_order": per_lane.get(lane, 0),
            "team_id": teams[team_idx].id if team_idx is not None else None,
        }
        if slot is not None:
            start = datetime.combine(days[slot[0]], time(hour=slot[1]))
            fields["start_at"] = start
            fields["end_at"] = start + timedelta(hours=1)
        backend.create_task(fields)
        per_lane[lane] = per_lane.get(lane, 0) + 1

    logger.info("demo_seeded", extra={"project_id": project.id, "tasks": len(DEMO_TASKS)})
    return project
