from __future__ import annotations

import pytest

from pyitemsync.exceptions import ItemSyncDataError, SynchronizationError
from pyitemsync.models import DatasetSyncResponse, format_item_value, parse_item_records


def test_parse_item_records() -> None:
    assert parse_item_records({"sword": "2", "shield": "-1", "gem": "0"}) == {"sword": 2, "shield": -1, "gem": 0}


def test_parse_item_records_rejects_non_integers() -> None:
    with pytest.raises(ItemSyncDataError) as exc_info:
        parse_item_records({"sword": "2", "shield": "many"}, dataset="gameItems")

    exc = exc_info.value
    assert isinstance(exc, SynchronizationError)
    assert exc.dataset == "gameItems"
    assert "shield" in str(exc)


def test_format_item_value() -> None:
    assert format_item_value(7) == "7"
    assert format_item_value(-3) == "-3"


def test_sync_response_ignores_extra_fields() -> None:
    response = DatasetSyncResponse.model_validate_json('{"records": {"x": "1"}, "syncCount": 4}')
    assert response.records == {"x": "1"}
