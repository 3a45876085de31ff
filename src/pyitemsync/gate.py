"""Single-flight sync gate and cooldown scheduling."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from pyitemsync.config import DEFAULT_UPDATE_INTERVAL

_logger = logging.getLogger(__name__)


class Cancellable(Protocol):
    """Handle returned by a scheduler; ``asyncio.TimerHandle`` satisfies it."""

    def cancel(self) -> None:
        ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]
"""``(delay, callback) -> handle``; defaults to the running loop's ``call_later``."""


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> Cancellable:
    return asyncio.get_running_loop().call_later(delay, callback)


class SyncGate:
    """Boolean-flag state machine guarding synchronize calls.

    At most one synchronize may be outstanding.  ``request_sync`` while one
    is in flight is a logged no-op and is never queued; a write that lands
    in the meantime is picked up by the in-flight completion instead.

    After each finished cycle the owner calls ``schedule_next``, which
    arms a single cooldown timer.  When it fires the gate clears
    ``waiting_for_sync`` and requests a sync.
    """

    def __init__(
        self,
        launch: Callable[[], None],
        *,
        interval: float = DEFAULT_UPDATE_INTERVAL,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._launch = launch
        self._interval = interval
        self._scheduler = scheduler or _loop_scheduler
        self._cooldown: Cancellable | None = None

        self.initializing = False
        self.initialized = False
        self.synchronizing = False
        self.waiting_for_sync = False

    @property
    def interval(self) -> float:
        return self._interval

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def begin_initialization(self) -> bool:
        """Enter ``initializing``; returns ``False`` if already started or done."""
        if self.initializing:
            _logger.error("Already initializing")
            return False
        if self.initialized:
            _logger.error("Already initialized")
            return False
        self.initializing = True
        return True

    def abort_initialization(self) -> None:
        self.initializing = False

    def complete_initialization(self) -> bool:
        """Flip to ``initialized``; ``True`` only on the first call."""
        if self.initialized:
            return False
        self.initializing = False
        self.initialized = True
        return True

    # ------------------------------------------------------------------
    # Sync gating
    # ------------------------------------------------------------------

    def request_sync(self) -> bool:
        """Start a synchronize unless one is already in flight."""
        if self.synchronizing:
            _logger.debug("Sync is in progress")
            return False
        self.synchronizing = True
        self._launch()
        return True

    def release(self) -> None:
        self.synchronizing = False

    def schedule_next(self) -> None:
        """Arm the cooldown timer unless it is already armed."""
        if self.waiting_for_sync:
            _logger.debug("Waiting for sync")
            return
        self.waiting_for_sync = True
        _logger.debug("Next sync in %.2fs", self._interval)
        self._cooldown = self._scheduler(self._interval, self._on_cooldown_expired)

    def _on_cooldown_expired(self) -> None:
        self._cooldown = None
        self.waiting_for_sync = False
        self.request_sync()

    def cancel(self) -> None:
        """Disarm the cooldown timer, if any."""
        handle = self._cooldown
        self._cooldown = None
        self.waiting_for_sync = False
        if handle is not None:
            handle.cancel()
