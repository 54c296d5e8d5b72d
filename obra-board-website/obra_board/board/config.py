from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from obra_board.config_utils import env_bool, env_first, env_str, local_sqlite_url


LOCAL_DB_FILENAME = "obra_board.db"


@dataclass(frozen=True)
class BoardConfig:
    """Runtime configuration for the scheduling board.

    DB selection:
    - OBRA_BOARD_DATABASE_URL: board-specific DB URL (preferred)
    - PLATFORM_DATABASE_URL: shared DB URL
    - DATABASE_URL: generic fallback
    - If none is set, defaults to local SQLite at data/obra_board.db

    Behaviour:
    - OBRA_BOARD_NOTIFY_SUCCESS: toast after a confirmed move (default: true)
    - OBRA_BOARD_LOG_LEVEL: root log level for the app (default: INFO)
    - OBRA_BOARD_SEED_DEMO: seed a demo obra into an empty DB (default: true,
      only ever applied to the repo-local SQLite DB)
    """

    database_url: str
    notify_on_success: bool
    log_level: str
    seed_demo_data: bool

    @classmethod
    def from_env(cls) -> "BoardConfig":
        db_url = env_first("OBRA_BOARD_DATABASE_URL", "PLATFORM_DATABASE_URL", "DATABASE_URL")
        if not db_url:
            db_url = local_sqlite_url(LOCAL_DB_FILENAME)

        return cls(
            database_url=db_url,
            notify_on_success=env_bool("OBRA_BOARD_NOTIFY_SUCCESS", True),
            log_level=env_str("OBRA_BOARD_LOG_LEVEL", "INFO").upper(),
            seed_demo_data=env_bool("OBRA_BOARD_SEED_DEMO", True),
        )

    @property
    def is_local_sqlite(self) -> bool:
        db = self.database_url.replace("\\", "/")
        return db.startswith("sqlite:///") and db.endswith(f"/data/{LOCAL_DB_FILENAME}")


_config: Optional[BoardConfig] = None


def get_config() -> BoardConfig:
    """Get the board configuration (cached)."""
    global _config
    if _config is None:
        _config = BoardConfig.from_env()
    return _config


def reset_config() -> None:
    global _config
    _config = None
