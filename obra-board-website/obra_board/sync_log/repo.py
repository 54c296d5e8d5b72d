"""Sync log repository functions."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import Integer, and_, desc, func
from sqlalchemy.exc import SQLAlchemyError

from obra_board.board.db import get_engine, get_session
from obra_board.clock import utcnow

from .config import get_config
from .models import Base, SyncCall

logger = logging.getLogger(__name__)

PAYLOAD_LIMIT = 10000
ERROR_LIMIT = 2000


def _url(database_url: Optional[str]) -> str:
    return database_url or get_config().database_url


def init_db(database_url: Optional[str] = None) -> None:
    """Create the sync log table if missing. Safe to call multiple times."""
    Base.metadata.create_all(get_engine(_url(database_url)))


def log_sync_call(
    operation: str,
    payload: Optional[Dict[str, Any]] = None,
    success: bool = False,
    error_message: Optional[str] = None,
    error_type: Optional[str] = None,
    started_at: Optional[datetime] = None,
    duration_ms: Optional[float] = None,
    task_id: Optional[str] = None,
    project_id: Optional[str] = None,
    source: Optional[str] = None,
    database_url: Optional[str] = None,
) -> Optional[str]:
    """Record one backend write.

    Returns:
        The ID of the created entry, or None if recording is disabled or failed.
    """
    config = get_config()
    if not config.enabled:
        return None

    payload_json = None
    if payload:
        payload_json = json.dumps(payload, default=str, sort_keys=True)[:PAYLOAD_LIMIT]

    entry = SyncCall(
        operation=operation,
        task_id=task_id,
        project_id=project_id,
        payload_json=payload_json,
        success=success,
        error_message=error_message[:ERROR_LIMIT] if error_message else None,
        error_type=error_type,
        started_at=started_at or utcnow(),
        duration_ms=duration_ms,
        source=source,
    )
    try:
        with get_session(_url(database_url)) as session:
            session.add(entry)
            session.commit()
            return entry.id
    except SQLAlchemyError:
        # Recording must never break a board operation.
        logger.warning("sync_log_write_failed", extra={"operation": operation}, exc_info=True)
        return None


def get_sync_calls(
    operation: Optional[str] = None,
    success: Optional[bool] = None,
    source: Optional[str] = None,
    task_id: Optional[str] = None,
    since: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
    database_url: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Query recorded calls, newest first."""
    try:
        with get_session(_url(database_url)) as session:
            query = session.query(SyncCall)
            if operation:
                query = query.filter(SyncCall.operation == operation)
            if success is not None:
                query = query.filter(SyncCall.success == success)
            if source:
                query = query.filter(SyncCall.source == source)
            if task_id:
                query = query.filter(SyncCall.task_id == task_id)
            if since:
                query = query.filter(SyncCall.started_at >= since)

            query = query.order_by(desc(SyncCall.started_at)).limit(limit).offset(offset)
            return [row.to_dict() for row in query.all()]
    except SQLAlchemyError:
        return []


def get_sync_call_stats(
    since: Optional[datetime] = None,
    database_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Aggregate counts and timings since ``since`` (default: last 7 days)."""
    if since is None:
        since = utcnow() - timedelta(days=7)

    empty = {
        "total_calls": 0,
        "successful_calls": 0,
        "failed_calls": 0,
        "success_rate": 0,
        "avg_duration_ms": None,
        "max_duration_ms": None,
        "since": since.isoformat(),
    }
    try:
        with get_session(_url(database_url)) as session:
            row = session.query(
                func.count(SyncCall.id).label("total"),
                func.sum(func.cast(SyncCall.success, Integer)).label("ok"),
                func.avg(SyncCall.duration_ms).label("avg_ms"),
                func.max(SyncCall.duration_ms).label("max_ms"),
            ).filter(SyncCall.started_at >= since).one()
    except SQLAlchemyError:
        return empty

    total = row.total or 0
    if not total:
        return empty
    successful = int(row.ok or 0)
    return {
        "total_calls": total,
        "successful_calls": successful,
        "failed_calls": total - successful,
        "success_rate": round(successful / total * 100, 2),
        "avg_duration_ms": round(row.avg_ms, 2) if row.avg_ms is not None else None,
        "max_duration_ms": round(row.max_ms, 2) if row.max_ms is not None else None,
        "since": since.isoformat(),
    }


def get_operation_stats(
    since: Optional[datetime] = None,
    database_url: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Per-operation counts, busiest first."""
    if since is None:
        since = utcnow() - timedelta(days=7)

    try:
        with get_session(_url(database_url)) as session:
            results = session.query(
                SyncCall.operation,
                func.count(SyncCall.id).label("total_calls"),
                func.sum(func.cast(SyncCall.success, Integer)).label("successful_calls"),
                func.avg(SyncCall.duration_ms).label("avg_duration_ms"),
            ).filter(SyncCall.started_at >= since).group_by(SyncCall.operation).all()
    except SQLAlchemyError:
        return []

    stats = []
    for row in results:
        total = row.total_calls or 0
        successful = int(row.successful_calls or 0)
        stats.append({
            "operation": row.operation,
            "total_calls": total,
            "successful_calls": successful,
            "failed_calls": total - successful,
            "success_rate": round(successful / total * 100, 2) if total else 0,
            "avg_duration_ms": round(row.avg_duration_ms, 2) if row.avg_duration_ms is not None else None,
        })
    return sorted(stats, key=lambda x: x["total_calls"], reverse=True)


def get_recent_errors(
    limit: int = 20,
    since: Optional[datetime] = None,
    database_url: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Failed calls since ``since`` (default: last day), newest first."""
    if since is None:
        since = utcnow() - timedelta(days=1)

    try:
        with get_session(_url(database_url)) as session:
            query = session.query(SyncCall).filter(
                and_(SyncCall.started_at >= since, SyncCall.success.is_(False))
            ).order_by(desc(SyncCall.started_at)).limit(limit)
            return [row.to_dict() for row in query.all()]
    except SQLAlchemyError:
        return []


def cleanup_old_logs(
    retention_days: Optional[int] = None,
    database_url: Optional[str] = None,
) -> int:
    """Delete entries older than the retention period; returns the count deleted."""
    if retention_days is None:
        retention_days = get_config().retention_days

    cutoff = utcnow() - timedelta(days=retention_days)
    try:
        with get_session(_url(database_url)) as session:
            deleted = session.query(SyncCall).filter(
                SyncCall.started_at < cutoff
            ).delete(synchronize_session=False)
            session.commit()
            return deleted
    except SQLAlchemyError:
        return 0
