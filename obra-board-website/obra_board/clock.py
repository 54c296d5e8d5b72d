from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the DateTime columns are naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
