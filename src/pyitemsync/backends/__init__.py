"""Concrete dataset stores and identity providers."""

from pyitemsync.backends.http import HttpDataset, HttpDatasetStore
from pyitemsync.backends.memory import InMemoryDataset, InMemoryDatasetStore, StaticIdentityProvider

__all__ = [
    "HttpDataset",
    "HttpDatasetStore",
    "InMemoryDataset",
    "InMemoryDatasetStore",
    "StaticIdentityProvider",
]
