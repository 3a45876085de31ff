"""Pure item-count reconciliation helpers.

Both functions walk the union of keys of two item maps, treating a
missing key as ``0``.  They are deliberately kept apart: one compares
snapshots, the other merges a buffered write with observed changes.
"""

from __future__ import annotations

from collections.abc import Mapping


def calculate_items_deltas(before: Mapping[str, int], after: Mapping[str, int]) -> dict[str, int]:
    """Return ``after - before`` for every key whose count differs.

    Keys with equal counts on both sides (including keys missing on one
    side and ``0`` on the other) are absent from the result, so an empty
    dict means "no change".
    """
    deltas: dict[str, int] = {}
    for key in before.keys() | after.keys():
        old = before.get(key, 0)
        new = after.get(key, 0)
        if old != new:
            deltas[key] = new - old
    return deltas


def sum_items(first: Mapping[str, int], second: Mapping[str, int]) -> dict[str, int]:
    """Add two item maps key by key.

    A key is only emitted when its two counts differ.  This means a key
    carrying the same non-zero count on both sides is dropped even though
    its sum is non-zero; callers rely on this exact behaviour (see
    ``tests/test_reconcile.py``).
    """
    merged: dict[str, int] = {}
    for key in first.keys() | second.keys():
        a = first.get(key, 0)
        b = second.get(key, 0)
        if a != b:
            merged[key] = a + b
    return merged
