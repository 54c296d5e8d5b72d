"""User-facing notifications.

A notifier is any ``(level, title, message)`` callable; ``level`` is one of
``"success"``, ``"error"`` or ``"info"``. Pages pass one that shows a toast.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str, str], None]

LEVELS = ("success", "error", "info")


def log_notifier(level: str, title: str, message: str) -> None:
    log = logger.error if level == "error" else logger.info
    log("%s: %s", title, message)


class RecordingNotifier:
    """Keeps every notification; handy for pages that batch toasts and for tests."""

    def __init__(self) -> None:
        self.messages: List[Tuple[str, str, str]] = []

    def __call__(self, level: str, title: str, message: str) -> None:
        self.messages.append((level, title, message))

    def levels(self) -> List[str]:
        return [level for level, _, _ in self.messages]

    def drain(self) -> List[Tuple[str, str, str]]:
        messages, self.messages = self.messages, []
        return messages
