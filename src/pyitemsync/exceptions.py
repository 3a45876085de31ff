"""Custom exception hierarchy for pyitemsync."""

from __future__ import annotations


class ItemSyncError(Exception):
    """Base exception for all pyitemsync errors."""


class ItemSyncConfigError(ItemSyncError):
    """Invalid or missing configuration."""


class NotInitializedError(ItemSyncError):
    """A mutating operation was called before the first successful sync."""


class IdentityResolutionError(ItemSyncError):
    """The identity provider could not supply an identity for the pool."""

    def __init__(self, message: str, *, pool_id: str = "") -> None:
        self.pool_id = pool_id
        super().__init__(message)


class SynchronizationError(ItemSyncError):
    """The remote dataset failed to synchronize.

    Delivered to ``synchronization_failed`` subscribers.  The engine keeps
    its periodic cadence after this error, so the next scheduled attempt
    will run regardless.
    """

    def __init__(
        self,
        message: str,
        *,
        dataset: str = "",
        status_code: int | None = None,
    ) -> None:
        self.dataset = dataset
        self.status_code = status_code
        super().__init__(message)


class ItemSyncDataError(SynchronizationError):
    """A dataset record could not be parsed as an item count."""
