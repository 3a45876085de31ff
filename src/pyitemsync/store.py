"""Structural interfaces for the collaborators the engine drives.

The engine never talks to a concrete backend; any object matching these
protocols works, which keeps production stores and test doubles
interchangeable.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol


class RemoteDataset(Protocol):
    """A named key/value dataset that is synchronized with a remote copy.

    ``put`` only updates the local copy; changes reach the remote on the
    next ``synchronize``.  ``synchronize`` raises on failure.
    """

    @property
    def name(self) -> str:
        ...

    @property
    def records(self) -> Mapping[str, str]:
        ...

    def put(self, key: str, value: str) -> None:
        ...

    async def synchronize(self) -> None:
        ...


class RemoteDatasetStore(Protocol):
    """Opens datasets for an identity.  Opening the same name twice returns the same dataset."""

    def open_or_create(self, name: str, *, identity_id: str) -> RemoteDataset:
        ...


class IdentityProvider(Protocol):
    """Resolves an opaque identity id for an identity pool."""

    async def get_identity(self, pool_id: str) -> str:
        ...
