"""In-process dataset store.

The "remote" side is a dict held by the store, shared by every dataset
opened for the same identity and name.  Useful offline and as a
deterministic backend in tests.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from types import MappingProxyType

from pyitemsync.exceptions import IdentityResolutionError

_logger = logging.getLogger(__name__)


class InMemoryDataset:
    """Dataset whose remote copy lives in an :class:`InMemoryDatasetStore`."""

    def __init__(self, name: str, remote: dict[str, str]) -> None:
        self._name = name
        self._remote = remote
        self._records: dict[str, str] = dict(remote)
        self._dirty: dict[str, str] = {}
        self.sync_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def records(self) -> Mapping[str, str]:
        return MappingProxyType(self._records)

    def put(self, key: str, value: str) -> None:
        self._records[key] = value
        self._dirty[key] = value

    async def synchronize(self) -> None:
        """Push local puts (last writer wins), then pull the remote copy."""
        await asyncio.sleep(0)
        self.sync_count += 1
        if self._dirty:
            _logger.debug("Pushing %d record(s) to dataset %s", len(self._dirty), self._name)
            self._remote.update(self._dirty)
            self._dirty.clear()
        self._records = dict(self._remote)


class InMemoryDatasetStore:
    """Dataset store keeping one remote dict per ``(identity_id, name)``."""

    def __init__(self) -> None:
        self._remotes: dict[tuple[str, str], dict[str, str]] = {}
        self._datasets: dict[tuple[str, str], InMemoryDataset] = {}

    def _remote(self, identity_id: str, name: str) -> dict[str, str]:
        remote = self._remotes.get((identity_id, name))
        if remote is None:
            remote = {}
            self._remotes[(identity_id, name)] = remote
        return remote

    def open_or_create(self, name: str, *, identity_id: str) -> InMemoryDataset:
        dataset = self._datasets.get((identity_id, name))
        if dataset is None:
            dataset = InMemoryDataset(name, self._remote(identity_id, name))
            self._datasets[(identity_id, name)] = dataset
        return dataset

    def remote_records(self, name: str, *, identity_id: str) -> dict[str, str]:
        """Copy of the remote side, as another device would see it."""
        return dict(self._remote(identity_id, name))

    def write_remote(self, name: str, records: Mapping[str, str], *, identity_id: str) -> None:
        """Change the remote side directly, as another device would."""
        self._remote(identity_id, name).update(records)


class StaticIdentityProvider:
    """Identity provider returning a fixed id for every pool."""

    def __init__(self, identity_id: str) -> None:
        self._identity_id = identity_id

    async def get_identity(self, pool_id: str) -> str:
        if not self._identity_id:
            raise IdentityResolutionError(f"No identity configured for pool {pool_id!r}", pool_id=pool_id)
        return self._identity_id
