"""Typed models shared by the engine and the dataset stores."""

from pyitemsync.models.items import ItemMap, format_item_value, parse_item_records
from pyitemsync.models.status import DatasetSyncResponse, SyncStatus

__all__ = [
    "DatasetSyncResponse",
    "ItemMap",
    "SyncStatus",
    "format_item_value",
    "parse_item_records",
]
