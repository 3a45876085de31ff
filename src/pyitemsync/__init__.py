"""pyitemsync - Async reconciliation of item counts against a remote dataset."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyitemsync")
except PackageNotFoundError:
    __version__ = "0+local"
from pyitemsync.config import ItemSyncConfig
from pyitemsync.engine import ItemSyncEngine
from pyitemsync.exceptions import (
    IdentityResolutionError,
    ItemSyncConfigError,
    ItemSyncDataError,
    ItemSyncError,
    NotInitializedError,
    SynchronizationError,
)
from pyitemsync.gate import SyncGate
from pyitemsync.models import ItemMap, SyncStatus
from pyitemsync.notifier import ChangeNotifier
from pyitemsync.reconcile import calculate_items_deltas, sum_items
from pyitemsync.store import IdentityProvider, RemoteDataset, RemoteDatasetStore

__all__ = [
    "__version__",
    "ChangeNotifier",
    "IdentityProvider",
    "IdentityResolutionError",
    "ItemMap",
    "ItemSyncConfig",
    "ItemSyncConfigError",
    "ItemSyncDataError",
    "ItemSyncEngine",
    "ItemSyncError",
    "NotInitializedError",
    "RemoteDataset",
    "RemoteDatasetStore",
    "SyncGate",
    "SyncStatus",
    "SynchronizationError",
    "calculate_items_deltas",
    "sum_items",
]
