"""Subscriber lists for engine lifecycle and item change events."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any

_logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class ChangeNotifier:
    """Fan-out for the five engine events.

    Subscribers are plain callables invoked synchronously on the event
    loop.  A subscriber that raises is logged and skipped; the remaining
    subscribers still run.
    """

    def __init__(self) -> None:
        self._initialized: list[Callable[[], None]] = []
        self._initialization_failed: list[Callable[[Exception], None]] = []
        self._synchronized: list[Callable[[], None]] = []
        self._synchronization_failed: list[Callable[[Exception], None]] = []
        self._items_changed: list[Callable[[dict[str, int]], None]] = []

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    @staticmethod
    def _add(bucket: list[Any], callback: Callable[..., None]) -> Unsubscribe:
        bucket.append(callback)

        def _remove() -> None:
            with contextlib.suppress(ValueError):
                bucket.remove(callback)

        return _remove

    def subscribe_initialized(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._add(self._initialized, callback)

    def subscribe_initialization_failed(self, callback: Callable[[Exception], None]) -> Unsubscribe:
        return self._add(self._initialization_failed, callback)

    def subscribe_synchronized(self, callback: Callable[[], None]) -> Unsubscribe:
        return self._add(self._synchronized, callback)

    def subscribe_synchronization_failed(self, callback: Callable[[Exception], None]) -> Unsubscribe:
        return self._add(self._synchronization_failed, callback)

    def subscribe_items_changed(self, callback: Callable[[dict[str, int]], None]) -> Unsubscribe:
        return self._add(self._items_changed, callback)

    def clear(self) -> None:
        for bucket in (
            self._initialized,
            self._initialization_failed,
            self._synchronized,
            self._synchronization_failed,
            self._items_changed,
        ):
            bucket.clear()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    @staticmethod
    def _dispatch(
        name: str,
        bucket: list[Callable[..., None]],
        *args: Any,
        copy_args: bool = False,
    ) -> None:
        # Copy so a subscriber may unsubscribe itself during dispatch.
        for callback in list(bucket):
            call_args = tuple(dict(arg) if copy_args and isinstance(arg, Mapping) else arg for arg in args)
            try:
                callback(*call_args)
            except Exception:
                _logger.debug("%s callback failed", name, exc_info=True)

    def notify_initialized(self) -> None:
        self._dispatch("initialized", self._initialized)

    def notify_initialization_failed(self, error: Exception) -> None:
        self._dispatch("initialization_failed", self._initialization_failed, error)

    def notify_synchronized(self) -> None:
        self._dispatch("synchronized", self._synchronized)

    def notify_synchronization_failed(self, error: Exception) -> None:
        self._dispatch("synchronization_failed", self._synchronization_failed, error)

    def notify_items_changed(self, deltas: Mapping[str, int]) -> bool:
        """Dispatch *deltas* if non-empty; returns whether anything was sent."""
        if not deltas:
            return False
        # Each subscriber gets its own copy of the deltas.
        self._dispatch("items_changed", self._items_changed, deltas, copy_args=True)
        return True
