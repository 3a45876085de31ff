"""Status snapshot and wire models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SyncStatus(BaseModel):
    """Point-in-time view of the engine's gate and buffers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    initializing: bool = False
    initialized: bool = False
    synchronizing: bool = False
    waiting_for_sync: bool = False
    has_pending: bool = False
    dataset_name: str | None = None
    identity_id: str | None = Field(default=None, repr=False)


class DatasetSyncResponse(BaseModel):
    """Body returned by the HTTP dataset store after a synchronize."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    records: dict[str, str] = Field(default_factory=dict)
