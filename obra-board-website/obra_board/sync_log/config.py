"""Sync log configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from obra_board.board.config import get_config as get_board_config
from obra_board.config_utils import env_bool, env_int, env_optional_str


@dataclass(frozen=True)
class SyncLogConfig:
    """Configuration for the sync log.

    Environment variables:
    - SYNC_LOG_DATABASE_URL: sync-log-specific database URL
    - SYNC_LOG_RETENTION_DAYS: Number of days to keep entries (default: 30)
    - SYNC_LOG_ENABLED: Enable/disable recording (default: true)

    Defaults to the board database.
    """

    database_url: str
    retention_days: int
    enabled: bool

    @classmethod
    def from_env(cls) -> "SyncLogConfig":
        database_url = env_optional_str("SYNC_LOG_DATABASE_URL")
        if not database_url:
            database_url = get_board_config().database_url

        return cls(
            database_url=database_url,
            retention_days=env_int("SYNC_LOG_RETENTION_DAYS", 30),
            enabled=env_bool("SYNC_LOG_ENABLED", True),
        )


# Global config instance
_config: Optional[SyncLogConfig] = None


def get_config() -> SyncLogConfig:
    """Get the sync log configuration (cached)."""
    global _config
    if _config is None:
        _config = SyncLogConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
