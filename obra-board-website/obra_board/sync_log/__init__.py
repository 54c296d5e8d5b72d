"""Sync log: a record of every write the board sends to the backend.

This module provides:
- The ``board_sync_calls`` model
- Repository functions to record and query calls
- ``LoggedTaskBackend``, a backend wrapper that records each write
"""

from .repo import (
    init_db,
    log_sync_call,
    get_sync_calls,
    get_sync_call_stats,
    get_operation_stats,
    get_recent_errors,
    cleanup_old_logs,
)

from .interceptor import LoggedTaskBackend

__all__ = [
    "init_db",
    "log_sync_call",
    "get_sync_calls",
    "get_sync_call_stats",
    "get_operation_stats",
    "get_recent_errors",
    "cleanup_old_logs",
    "LoggedTaskBackend",
]
