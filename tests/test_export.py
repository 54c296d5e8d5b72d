from datetime import datetime

from conftest import make_task
from obra_board.board.export import (
    EXPORT_COLUMNS,
    lane_priority_chart,
    lane_priority_counts,
    tasks_to_csv,
    tasks_to_dataframe,
)
from obra_board.board.types import LANES, PRIORITIES


def test_dataframe_uses_labels():
    df = tasks_to_dataframe([make_task("a", "doing", priority="urgent", start_at=datetime(2024, 6, 10, 8))])

    assert list(df.columns) == EXPORT_COLUMNS
    row = df.iloc[0]
    assert (row["lane"], row["status"], row["priority"]) == ("Fazendo", "Em Andamento", "Urgente")
    assert row["start_at"] == datetime(2024, 6, 10, 8)


def test_empty_export_keeps_header():
    assert list(tasks_to_dataframe([]).columns) == EXPORT_COLUMNS
    assert tasks_to_csv([]).decode("utf-8").strip() == ",".join(EXPORT_COLUMNS)


def test_counts_are_zero_filled():
    df = lane_priority_counts([make_task("a", "todo", priority="high"), make_task("b", "todo", priority="high")])

    assert len(df) == len(LANES) * len(PRIORITIES)
    assert df["count"].sum() == 2
    hit = df[(df["lane"] == "todo") & (df["priority"] == "high")]
    assert int(hit["count"].iloc[0]) == 2


def test_chart_has_one_trace_per_priority():
    fig = lane_priority_chart([make_task("a")])
    assert len(fig.data) == len(PRIORITIES)
