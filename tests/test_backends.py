from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer as AiohttpServer

from pyitemsync.backends.http import HttpDatasetStore
from pyitemsync.backends.memory import InMemoryDatasetStore, StaticIdentityProvider
from pyitemsync.config import ItemSyncConfig
from pyitemsync.engine import ItemSyncEngine
from pyitemsync.exceptions import IdentityResolutionError, ItemSyncConfigError, SynchronizationError

IDENTITY = "us-west-2:device-owner-1"


@dataclass
class _ManualScheduler:
    callbacks: list[Callable[[], None]] = field(default_factory=list)

    def __call__(self, _delay: float, callback: Callable[[], None]) -> Any:
        self.callbacks.append(callback)

        class _Handle:
            def cancel(self) -> None:
                pass

        return _Handle()


# ----------------------------------------------------------------------
# In-memory store
# ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_memory_dataset_push_then_pull() -> None:
    store = InMemoryDatasetStore()
    dataset = store.open_or_create("gameItems", identity_id=IDENTITY)
    assert store.open_or_create("gameItems", identity_id=IDENTITY) is dataset

    dataset.put("sword", "1")
    assert store.remote_records("gameItems", identity_id=IDENTITY) == {}

    store.write_remote("gameItems", {"shield": "2"}, identity_id=IDENTITY)
    await dataset.synchronize()

    assert dict(dataset.records) == {"sword": "1", "shield": "2"}
    assert store.remote_records("gameItems", identity_id=IDENTITY) == {"sword": "1", "shield": "2"}


@pytest.mark.asyncio
async def test_static_identity_provider() -> None:
    assert await StaticIdentityProvider(IDENTITY).get_identity("pool") == IDENTITY
    with pytest.raises(IdentityResolutionError):
        await StaticIdentityProvider("").get_identity("pool")


@pytest.mark.asyncio
async def test_two_devices_see_each_others_writes() -> None:
    store = InMemoryDatasetStore()
    config = ItemSyncConfig(pool_id="us-west-2:pool")
    changes: list[dict[str, int]] = []

    device_a = ItemSyncEngine(
        config,
        store=store,
        identity=StaticIdentityProvider(IDENTITY),
        scheduler=_ManualScheduler(),
    )
    device_b = ItemSyncEngine(
        config,
        store=store,
        identity=StaticIdentityProvider(IDENTITY),
        scheduler=_ManualScheduler(),
        on_items_changed=changes.append,
    )
    async with device_a, device_b:
        device_a.initialize()
        device_b.initialize()
        assert await device_a.wait_initialized(timeout=1.0)
        assert await device_b.wait_initialized(timeout=1.0)

        device_a.set_items({"potion": 3}, sync_now=True)
        for _ in range(20):
            await asyncio.sleep(0)

        device_b.sync()
        for _ in range(20):
            await asyncio.sleep(0)

    assert changes == [{"potion": 3}]
    assert device_b.get_items() == {"potion": 3}


# ----------------------------------------------------------------------
# HTTP store
# ----------------------------------------------------------------------


@dataclass
class _SyncServerState:
    records: dict[str, dict[str, str]] = field(default_factory=dict)
    requests: list[dict[str, Any]] = field(default_factory=list)
    fail_status: int | None = None
    raw_body: str | None = None


@pytest_asyncio.fixture
async def sync_server() -> AsyncIterator[tuple[AiohttpServer, _SyncServerState]]:
    state = _SyncServerState()

    async def handle_sync(request: web.Request) -> web.Response:
        body = await request.json()
        state.requests.append({"identity": request.match_info["identity"], **body})
        if state.fail_status is not None:
            return web.Response(status=state.fail_status, text="unavailable")
        if state.raw_body is not None:
            return web.Response(status=200, text=state.raw_body)
        records = state.records.setdefault(request.match_info["name"], {})
        records.update(body.get("puts", {}))
        return web.Response(status=200, text=json.dumps({"records": records}))

    app = web.Application()
    app.router.add_post("/identities/{identity}/datasets/{name}/sync", handle_sync)
    server = AiohttpServer(app)
    await server.start_server()
    try:
        yield server, state
    finally:
        await server.close()


def _http_config(server: AiohttpServer) -> ItemSyncConfig:
    return ItemSyncConfig(pool_id="us-west-2:pool", base_url=str(server.make_url("/")))


def test_http_store_requires_base_url() -> None:
    with pytest.raises(ItemSyncConfigError):
        HttpDatasetStore(ItemSyncConfig())


@pytest.mark.asyncio
async def test_http_dataset_pushes_puts_and_pulls_records(
    sync_server: tuple[AiohttpServer, _SyncServerState],
) -> None:
    server, state = sync_server
    state.records["gameItems"] = {"shield": "1"}

    async with HttpDatasetStore(_http_config(server)) as store:
        dataset = store.open_or_create("gameItems", identity_id=IDENTITY)
        dataset.put("sword", "2")
        await dataset.synchronize()

    assert state.requests == [{"identity": IDENTITY, "puts": {"sword": "2"}}]
    assert dict(dataset.records) == {"shield": "1", "sword": "2"}


@pytest.mark.asyncio
async def test_http_dataset_maps_error_status(sync_server: tuple[AiohttpServer, _SyncServerState]) -> None:
    server, state = sync_server
    state.fail_status = 503

    async with HttpDatasetStore(_http_config(server)) as store:
        dataset = store.open_or_create("gameItems", identity_id=IDENTITY)
        dataset.put("sword", "2")
        with pytest.raises(SynchronizationError) as exc_info:
            await dataset.synchronize()

    assert exc_info.value.status_code == 503
    assert exc_info.value.dataset == "gameItems"
    # The put stays local and is retried with the next synchronize.
    assert dict(dataset.records) == {"sword": "2"}


@pytest.mark.asyncio
async def test_http_dataset_rejects_invalid_json(sync_server: tuple[AiohttpServer, _SyncServerState]) -> None:
    server, state = sync_server
    state.raw_body = "<html>oops</html>"

    async with HttpDatasetStore(_http_config(server)) as store:
        dataset = store.open_or_create("gameItems", identity_id=IDENTITY)
        with pytest.raises(SynchronizationError):
            await dataset.synchronize()


@pytest.mark.asyncio
async def test_engine_over_http_store(sync_server: tuple[AiohttpServer, _SyncServerState]) -> None:
    server, state = sync_server
    state.records["gameItems"] = {"coin": "10"}
    synced: list[None] = []
    second_sync = asyncio.Event()

    def _on_synchronized() -> None:
        synced.append(None)
        if len(synced) >= 2:
            second_sync.set()

    config = _http_config(server)
    async with HttpDatasetStore(config) as store:
        async with ItemSyncEngine(
            config,
            store=store,
            identity=StaticIdentityProvider(IDENTITY),
            scheduler=_ManualScheduler(),
            on_synchronized=_on_synchronized,
        ) as engine:
            engine.initialize()
            assert await engine.wait_initialized(timeout=5.0)
            assert engine.get_items() == {"coin": 10}

            engine.set_items({"coin": 15}, sync_now=True)
            await asyncio.wait_for(second_sync.wait(), timeout=5.0)

    assert state.records["gameItems"] == {"coin": "15"}
