"""HTTP/JSON dataset store.

Wire contract::

    POST {base_url}/identities/{identity}/datasets/{name}/sync
    {"puts": {"<key>": "<value>", ...}}

    200 {"records": {"<key>": "<value>", ...}}

The response carries the full merged record set, which replaces the
local copy.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from pyitemsync._redact import mask_identifier
from pyitemsync.config import ItemSyncConfig
from pyitemsync.exceptions import ItemSyncConfigError, ItemSyncError, SynchronizationError
from pyitemsync.models.status import DatasetSyncResponse

_logger = logging.getLogger(__name__)


class HttpDataset:
    """Dataset synchronized through :class:`HttpDatasetStore`."""

    def __init__(self, store: HttpDatasetStore, name: str, identity_id: str) -> None:
        self._store = store
        self._name = name
        self._identity_id = identity_id
        self._records: dict[str, str] = {}
        self._dirty: dict[str, str] = {}

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
        sent = dict(self._dirty)
        response = await self._store.post_sync(self._identity_id, self._name, sent)

        # Puts that arrived while the request was in flight stay dirty.
        for key, value in sent.items():
            if self._dirty.get(key) == value:
                del self._dirty[key]

        records = dict(response.records)
        records.update(self._dirty)
        self._records = records


class HttpDatasetStore:
    """Dataset store backed by a JSON HTTP endpoint.

    Usage::

        async with HttpDatasetStore(config) as store:
            engine = ItemSyncEngine(config, store=store, identity=identity)
    """

    def __init__(
        self,
        config: ItemSyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not config.base_url:
            raise ItemSyncConfigError("HttpDatasetStore requires config.base_url")
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._external_session = session is not None
        self._http_session = session
        self._datasets: dict[tuple[str, str], HttpDataset] = {}

    async def __aenter__(self) -> HttpDatasetStore:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._config.request_timeout),
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
        self._http_session = None

    def open_or_create(self, name: str, *, identity_id: str) -> HttpDataset:
        dataset = self._datasets.get((identity_id, name))
        if dataset is None:
            dataset = HttpDataset(self, name, identity_id)
            self._datasets[(identity_id, name)] = dataset
        return dataset

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http_session is None:
            raise ItemSyncError("Store not opened. Use 'async with HttpDatasetStore(...) as store:'")
        return self._http_session

    async def post_sync(self, identity_id: str, name: str, puts: Mapping[str, str]) -> DatasetSyncResponse:
        """Send pending puts and return the merged record set."""
        http = self._require_session()
        url = f"{self._base_url}/identities/{quote(identity_id, safe='')}/datasets/{quote(name, safe='')}/sync"
        body = json.dumps({"puts": dict(puts)})

        _logger.debug(
            "POST sync dataset=%s identity=%s puts=%d",
            name,
            mask_identifier(identity_id),
            len(puts),
        )

        try:
            async with http.post(url, data=body, headers={"content-type": "application/json"}) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise SynchronizationError(
                        f"HTTP {resp.status} syncing dataset {name!r}: {text[:200]}",
                        dataset=name,
                        status_code=resp.status,
                    )
        except SynchronizationError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise SynchronizationError(
                f"Sync request for dataset {name!r} failed: {exc}",
                dataset=name,
            ) from exc

        try:
            return DatasetSyncResponse.model_validate_json(text)
        except ValidationError as exc:
            raise SynchronizationError(
                f"Invalid sync response for dataset {name!r}: {text[:200]}",
                dataset=name,
            ) from exc
