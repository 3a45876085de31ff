"""Item synchronization engine.

Keeps a local snapshot of an item-count mapping in step with a remote
dataset.  Every completed synchronize is diffed against the previous
snapshot and the non-zero deltas are published; a write submitted with
:meth:`ItemSyncEngine.set_items` is merged with those deltas and pushed
back before the engine goes idle.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pyitemsync._redact import mask_identifier
from pyitemsync.config import ItemSyncConfig
from pyitemsync.exceptions import (
    IdentityResolutionError,
    ItemSyncConfigError,
    ItemSyncError,
    NotInitializedError,
    SynchronizationError,
)
from pyitemsync.gate import Scheduler, SyncGate
from pyitemsync.models.items import ItemMap, format_item_value, parse_item_records
from pyitemsync.models.status import SyncStatus
from pyitemsync.notifier import ChangeNotifier
from pyitemsync.reconcile import calculate_items_deltas, sum_items
from pyitemsync.store import IdentityProvider, RemoteDataset, RemoteDatasetStore

_logger = logging.getLogger(__name__)


class ItemSyncEngine:
    """Reconciles a local item snapshot with a remote dataset.

    All methods must be called from the event loop the engine runs on.
    Nothing blocks: :meth:`initialize`, :meth:`sync` and :meth:`set_items`
    return immediately and completion is observed through the
    subscription callbacks (or :meth:`wait_initialized`).

    Usage::

        async with ItemSyncEngine(config, store=store, identity=identity) as engine:
            engine.notifier.subscribe_items_changed(print)
            engine.initialize()
            await engine.wait_initialized()
            engine.set_items({"sword": 2}, sync_now=True)
    """

    def __init__(
        self,
        config: ItemSyncConfig,
        *,
        store: RemoteDatasetStore,
        identity: IdentityProvider,
        scheduler: Scheduler | None = None,
        on_initialized: Callable[[], None] | None = None,
        on_initialization_failed: Callable[[Exception], None] | None = None,
        on_synchronized: Callable[[], None] | None = None,
        on_synchronization_failed: Callable[[Exception], None] | None = None,
        on_items_changed: Callable[[dict[str, int]], None] | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._identity_provider = identity
        self._gate = SyncGate(self._launch_synchronize, interval=config.update_interval, scheduler=scheduler)
        self.notifier = ChangeNotifier()

        self._pool_id: str | None = None
        self._identity_id: str | None = None
        self._dataset: RemoteDataset | None = None
        self._local_items: ItemMap | None = None
        self._pending_items: ItemMap | None = None
        self._identity_task: asyncio.Task[None] | None = None
        self._sync_task: asyncio.Task[None] | None = None
        self._initialized_event = asyncio.Event()
        self._disposed = False

        if on_initialized is not None:
            self.notifier.subscribe_initialized(on_initialized)
        if on_initialization_failed is not None:
            self.notifier.subscribe_initialization_failed(on_initialization_failed)
        if on_synchronized is not None:
            self.notifier.subscribe_synchronized(on_synchronized)
        if on_synchronization_failed is not None:
            self.notifier.subscribe_synchronization_failed(on_synchronization_failed)
        if on_items_changed is not None:
            self.notifier.subscribe_items_changed(on_items_changed)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ItemSyncEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.dispose()

    async def dispose(self) -> None:
        """Stop the cooldown timer, cancel in-flight work and drop subscribers."""
        if self._disposed:
            return
        self._disposed = True
        self._gate.cancel()
        for task in (self._identity_task, self._sync_task):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._identity_task = None
        self._sync_task = None
        self.notifier.clear()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def initializing(self) -> bool:
        return self._gate.initializing

    @property
    def initialized(self) -> bool:
        return self._gate.initialized

    @property
    def synchronizing(self) -> bool:
        return self._gate.synchronizing

    @property
    def identity_id(self) -> str | None:
        return self._identity_id

    @property
    def has_items(self) -> bool:
        return self._dataset is not None and len(self._dataset.records) > 0

    @property
    def is_empty(self) -> bool:
        return not self.has_items

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            initializing=self._gate.initializing,
            initialized=self._gate.initialized,
            synchronizing=self._gate.synchronizing,
            waiting_for_sync=self._gate.waiting_for_sync,
            has_pending=self._pending_items is not None,
            dataset_name=self._dataset.name if self._dataset is not None else None,
            identity_id=self._identity_id,
        )

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self, pool_id: str | None = None) -> None:
        """Resolve an identity, open the dataset and run the first sync.

        A second call while initializing or after initialization is a
        logged no-op.  Identity failures are reported to
        ``initialization_failed`` subscribers and leave the engine ready
        for another ``initialize`` call.
        """
        if self._disposed:
            raise ItemSyncError("Engine has been disposed")

        resolved_pool = pool_id or self._config.pool_id
        if not resolved_pool:
            raise ItemSyncConfigError("No pool id (pass pool_id or set config.pool_id)")

        if not self._gate.begin_initialization():
            return

        _logger.debug("Initializing pool=%s", mask_identifier(resolved_pool))
        self._pool_id = resolved_pool
        self._identity_task = asyncio.get_running_loop().create_task(self._resolve_identity(resolved_pool))

    async def _resolve_identity(self, pool_id: str) -> None:
        try:
            identity_id = await self._identity_provider.get_identity(pool_id)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_identity_failure(pool_id, exc)
            return
        self._on_identity_received(identity_id)

    def _on_identity_failure(self, pool_id: str, exc: Exception) -> None:
        _logger.debug("Initialization failed")
        if isinstance(exc, IdentityResolutionError):
            error = exc
        else:
            error = IdentityResolutionError(f"Identity resolution failed: {exc}", pool_id=pool_id)
            error.__cause__ = exc
        _logger.error("%s", error)
        self._gate.abort_initialization()
        self.notifier.notify_initialization_failed(error)

    def _on_identity_received(self, identity_id: str) -> None:
        try:
            dataset = self._store.open_or_create(self._config.dataset_name, identity_id=identity_id)
        except Exception as exc:
            error = ItemSyncError(f"Opening dataset {self._config.dataset_name!r} failed: {exc}")
            error.__cause__ = exc
            _logger.error("%s", error)
            self._gate.abort_initialization()
            self.notifier.notify_initialization_failed(error)
            return
        self._identity_id = identity_id
        self._dataset = dataset
        _logger.debug("Identity received. IdentityId: %s", mask_identifier(identity_id))
        self._gate.request_sync()

    async def wait_initialized(self, timeout: float | None = None) -> bool:
        """Wait for the first successful sync; ``False`` on timeout."""
        try:
            await asyncio.wait_for(self._initialized_event.wait(), timeout)
        except TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def sync(self) -> None:
        """Request a synchronize right away (no-op while one is in flight)."""
        _logger.debug("Sync")
        if not self._gate.initialized:
            _logger.error("Not initialized")
            return
        self._gate.request_sync()

    def _launch_synchronize(self) -> None:
        if self._dataset is None:
            raise ItemSyncError("No dataset open")
        self._sync_task = asyncio.get_running_loop().create_task(self._synchronize(self._dataset))

    async def _synchronize(self, dataset: RemoteDataset) -> None:
        try:
            await dataset.synchronize()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._on_sync_failure(exc)
            return

        try:
            self._on_sync_success()
        except Exception as exc:
            self._on_sync_failure(exc)

    def _on_sync_success(self) -> None:
        _logger.debug("Sync succeeded")
        remote_items = self.get_items()
        local_items = self._local_items

        deltas: dict[str, int] = {}
        if local_items is not None:
            deltas = calculate_items_deltas(local_items, remote_items)
            if deltas:
                _logger.debug("Dispatching deltas %s", deltas)
                self.notifier.notify_items_changed(deltas)
            else:
                _logger.debug("No changes")

        self._local_items = remote_items

        if self._pending_items is not None:
            _logger.debug("Processing pending write")
            merged = sum_items(self._pending_items, deltas) if deltas else self._pending_items

            dataset = self._require_dataset()
            for key, value in merged.items():
                dataset.put(key, format_item_value(value))

            self._local_items = dict(merged)
            self._pending_items = None
            # Gate stays closed; this launch's completion ends the cycle.
            self._launch_synchronize()
            return

        self._gate.release()

        if self._gate.complete_initialization():
            _logger.debug("Initialized")
            self._initialized_event.set()
            self.notifier.notify_initialized()

        self.notifier.notify_synchronized()
        self._gate.schedule_next()

    def _on_sync_failure(self, exc: Exception) -> None:
        dataset_name = self._dataset.name if self._dataset is not None else self._config.dataset_name
        if isinstance(exc, SynchronizationError):
            error = exc
        else:
            error = SynchronizationError(f"Sync failed for dataset {dataset_name!r}: {exc}", dataset=dataset_name)
            error.__cause__ = exc
        _logger.error("Sync failed for dataset %r: %s", dataset_name, exc)

        self._gate.release()
        self.notifier.notify_synchronization_failed(error)
        self._gate.schedule_next()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def _require_dataset(self) -> RemoteDataset:
        if self._dataset is None:
            raise NotInitializedError("Dataset not open. Call initialize() first")
        return self._dataset

    def get_items(self) -> ItemMap:
        """Return a new dict with the dataset's current item counts.

        Empty before the dataset has been opened.
        """
        if self._dataset is None:
            return {}
        return parse_item_records(self._dataset.records, dataset=self._dataset.name)

    def set_items(self, items: Mapping[str, int], sync_now: bool = False) -> None:
        """Buffer *items* as the pending write.

        The pending write replaces any earlier one that has not been
        flushed yet.  With ``sync_now`` a synchronize is requested right
        away; otherwise the write goes out with the next scheduled sync.

        Raises
        ------
        NotInitializedError
            Before the first successful sync.
        """
        if not self._gate.initialized:
            _logger.error("Not initialized")
            raise NotInitializedError("set_items called before the first successful sync")

        _logger.debug("Pending write buffered: %d item(s)", len(items))
        if self._pending_items is not None:
            _logger.debug("Replacing unflushed pending write")
        self._pending_items = dict(items)

        if sync_now:
            self.sync()

    @staticmethod
    def calculate_items_deltas(before: Mapping[str, int], after: Mapping[str, int]) -> dict[str, int]:
        """Per-key ``after - before`` for keys whose counts differ."""
        return calculate_items_deltas(before, after)
