from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_configured = False


class ExtraFormatter(logging.Formatter):
    """Standard formatter that appends ``extra=`` fields as ``key=value``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}
        if not extras:
            return line
        fields = " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
        first, sep, rest = line.partition("\n")
        return f"{first} [{fields}]{sep}{rest}"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once per process (Streamlit re-runs every script)."""
    global _configured
    if _configured:
        return
    if level is None:
        from obra_board.board.config import get_config

        level = get_config().log_level
    handler = logging.StreamHandler()
    handler.setFormatter(ExtraFormatter(LOG_FORMAT))
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), handlers=[handler])
    # SQLAlchemy echoes every statement at INFO.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
