"""Helpers for safe debug logging.

Identity ids and pool ids are account identifiers; they are masked
before they reach DEBUG logs.
"""

from __future__ import annotations

_VISIBLE_SUFFIX = 4


def mask_identifier(value: str | None, *, visible: int = _VISIBLE_SUFFIX) -> str:
    """Return *value* with everything but the last *visible* chars masked.

    Region prefixes (``"us-west-2:"``) are kept so logs stay readable.
    """
    if not value:
        return "<none>"

    prefix, sep, rest = value.partition(":")
    if not sep:
        prefix, rest = "", value

    if len(rest) <= visible:
        masked = "*" * len(rest)
    else:
        masked = "*" * (len(rest) - visible) + rest[-visible:]
    return f"{prefix}{sep}{masked}"
