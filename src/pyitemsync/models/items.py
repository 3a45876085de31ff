"""Item map parsing between dataset records and integer counts."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import TypeAdapter, ValidationError

from pyitemsync.exceptions import ItemSyncDataError

ItemMap = dict[str, int]
"""Item key to count mapping."""

_ITEM_MAP_ADAPTER: TypeAdapter[dict[str, int]] = TypeAdapter(dict[str, int])


def parse_item_records(records: Mapping[str, str], *, dataset: str = "") -> ItemMap:
    """Convert string dataset records to an :data:`ItemMap`.

    Values are coerced with pydantic's lax integer rules: ``"12"`` parses,
    ``"abc"`` does not.

    Raises
    ------
    ItemSyncDataError
        When a record value is not an integer.
    """
    try:
        return _ITEM_MAP_ADAPTER.validate_python(dict(records))
    except ValidationError as exc:
        bad_keys = [str(err["loc"][0]) for err in exc.errors() if err.get("loc")]
        raise ItemSyncDataError(
            f"Dataset {dataset!r} has non-integer records: {', '.join(sorted(bad_keys))}",
            dataset=dataset,
        ) from exc


def format_item_value(value: int) -> str:
    """Render a count the way it is stored in a dataset record."""
    return str(int(value))
