"""In-process change feed.

The repository publishes the table name after every committed write; board
sessions subscribe and re-fetch. All Streamlit sessions live in one server
process, so this also propagates edits between open browser tabs.

Bound-method subscribers are held weakly: a board dropped with its browser
session stops receiving callbacks and is pruned on the next publish.
"""
from __future__ import annotations

import inspect
import logging
import threading
import weakref
from typing import Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], None]
Unsubscribe = Callable[[], None]

_Entry = Union[ChangeCallback, "weakref.WeakMethod"]


def _resolve(entry: _Entry) -> Optional[ChangeCallback]:
    if isinstance(entry, weakref.WeakMethod):
        return entry()
    return entry


class ChangeFeed:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[_Entry]] = {}

    def subscribe(self, entity: str, on_change: ChangeCallback) -> Unsubscribe:
        entry: _Entry = weakref.WeakMethod(on_change) if inspect.ismethod(on_change) else on_change
        with self._lock:
            self._subscribers.setdefault(entity, []).append(entry)

        def unsubscribe() -> None:
            with self._lock:
                entries = self._subscribers.get(entity) or []
                if entry in entries:
                    entries.remove(entry)

        return unsubscribe

    def _live(self, entity: str) -> List[ChangeCallback]:
        """Live callbacks of ``entity``; dead weak entries are dropped. Caller holds the lock."""
        entries = self._subscribers.get(entity) or []
        live: List[ChangeCallback] = []
        kept: List[_Entry] = []
        for entry in entries:
            callback = _resolve(entry)
            if callback is not None:
                live.append(callback)
                kept.append(entry)
        if len(kept) != len(entries):
            self._subscribers[entity] = kept
            logger.debug("change_subscribers_pruned", extra={"entity": entity, "pruned": len(entries) - len(kept)})
        return live

    def publish(self, entity: str) -> int:
        """Notify subscribers of ``entity``; returns how many were called."""
        with self._lock:
            callbacks = self._live(entity)
        for callback in callbacks:
            try:
                callback()
            except Exception:  # noqa: BLE001
                # One broken subscriber must not starve the others.
                logger.exception("change_subscriber_failed", extra={"entity": entity})
        return len(callbacks)

    def subscriber_count(self, entity: str) -> int:
        with self._lock:
            return len(self._live(entity))


_FEED = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return _FEED


def subscribe_to_changes(entity: str, on_change: ChangeCallback) -> Unsubscribe:
    return _FEED.subscribe(entity, on_change)
