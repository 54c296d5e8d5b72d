"""Tabular export and summary chart of the (filtered) board."""
from __future__ import annotations

from typing import Iterable, List

import pandas as pd
import plotly.express as px

from obra_board.board.types import LANE_LABELS, LANES, PRIORITIES, PRIORITY_LABELS, STATUS_LABELS, Task

EXPORT_COLUMNS = [
    "id",
    "title",
    "lane",
    "status",
    "priority",
    "team_name",
    "start_at",
    "end_at",
    "sort_order",
    "description",
    "notes",
]


def tasks_to_dataframe(tasks: Iterable[Task]) -> pd.DataFrame:
    rows: List[dict] = [t.to_dict() for t in tasks]
    if not rows:
        return pd.DataFrame(columns=EXPORT_COLUMNS)
    df = pd.DataFrame(rows)[EXPORT_COLUMNS]
    df["lane"] = df["lane"].map(LANE_LABELS).fillna(df["lane"])
    df["status"] = df["status"].map(STATUS_LABELS).fillna(df["status"])
    df["priority"] = df["priority"].map(PRIORITY_LABELS).fillna(df["priority"])
    for col in ("start_at", "end_at"):
        df[col] = pd.to_datetime(df[col], errors="coerce")
    return df


def tasks_to_csv(tasks: Iterable[Task]) -> bytes:
    return tasks_to_dataframe(tasks).to_csv(index=False).encode("utf-8")


def lane_priority_counts(tasks: Iterable[Task]) -> pd.DataFrame:
    """One row per (lane, priority) pair, zero-filled, in board order."""
    index = pd.MultiIndex.from_product([LANES, PRIORITIES], names=["lane", "priority"])
    counts = pd.Series(0, index=index, dtype="int64")
    for task in tasks:
        key = (task.lane, task.priority)
        if key in counts.index:
            counts[key] += 1
    df = counts.rename("count").reset_index()
    df["lane_label"] = df["lane"].map(LANE_LABELS)
    df["priority_label"] = df["priority"].map(PRIORITY_LABELS)
    return df


def lane_priority_chart(tasks: Iterable[Task]):
    df = lane_priority_counts(tasks)
    fig = px.bar(
        df,
        x="lane_label",
        y="count",
        color="priority_label",
        barmode="stack",
        title="Tarefas por raia e prioridade",
        labels={"lane_label": "Raia", "count": "Tarefas", "priority_label": "Prioridade"},
        category_orders={
            "lane_label": [LANE_LABELS[lane] for lane in LANES],
            "priority_label": [PRIORITY_LABELS[p] for p in PRIORITIES],
        },
    )
    fig.update_layout(margin=dict(l=10, r=10, t=40, b=10), legend_title_text="Prioridade")
    return fig
