"""Engine configuration for pyitemsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyitemsync.exceptions import ItemSyncConfigError

#: Dataset the items mapping lives in when none is configured.
DEFAULT_DATASET_NAME = "gameItems"

#: Seconds between a completed sync cycle and the next scheduled one.
DEFAULT_UPDATE_INTERVAL: float = 5.0


@dataclasses.dataclass(frozen=True)
class ItemSyncConfig:
    """Engine configuration.

    Parameters
    ----------
    pool_id : str
        Identity pool the engine resolves an identity against.  May be
        left empty and passed to ``ItemSyncEngine.initialize`` instead.
    dataset_name : str
        Name of the remote dataset holding the item counts.
    update_interval : float
        Cooldown in seconds between a finished sync cycle (success or
        failure) and the next automatically scheduled one.
    region : str
        Region label forwarded to stores that need one.
    base_url : str or None
        Endpoint for the HTTP dataset store.  Unused by other stores.
    request_timeout : float
        Total timeout in seconds for one HTTP synchronize request.
    """

    pool_id: str = ""
    dataset_name: str = DEFAULT_DATASET_NAME
    update_interval: float = DEFAULT_UPDATE_INTERVAL
    region: str = "us-west-2"
    base_url: str | None = None
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.update_interval < 0:
            raise ItemSyncConfigError(f"update_interval must be >= 0, got {self.update_interval}")
        if not self.dataset_name.strip():
            raise ItemSyncConfigError("dataset_name must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> ItemSyncConfig:
        """Create configuration from ``ITEMSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ItemSyncConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "ITEMSYNC_POOL_ID": "pool_id",
            "ITEMSYNC_DATASET": "dataset_name",
            "ITEMSYNC_REGION": "region",
            "ITEMSYNC_BASE_URL": "base_url",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric fields, handled separately
        interval_env = env.get("ITEMSYNC_UPDATE_INTERVAL")
        if interval_env is not None and "update_interval" not in overrides:
            try:
                config_kwargs["update_interval"] = float(interval_env)
            except ValueError as exc:
                raise ItemSyncConfigError(f"ITEMSYNC_UPDATE_INTERVAL is not a number: {interval_env!r}") from exc

        timeout_env = env.get("ITEMSYNC_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise ItemSyncConfigError(f"ITEMSYNC_REQUEST_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
