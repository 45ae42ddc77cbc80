"""
Inbound value validation.

All helpers are pure and never raise: a value that fails validation
comes back as None (or empty) and the caller drops it. Partial progress
is preferred over blocking the shared session.
"""

from __future__ import annotations

import math
from typing import Any, Mapping

from constants import (
    BYTE_MAGNITUDE_MAX,
    CONFIG_FIELD_BOUNDS,
    WATERFALL_MAX_INBOUND_BINS,
)


def normalize_callsign(raw: Any) -> str:
    """Trim and upper-case. Non-strings normalize to the empty string."""
    if not isinstance(raw, str):
        return ""
    return raw.strip().upper()


def _as_integral(value: Any) -> int | None:
    # bool is an int subclass; true/false are never ids
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def coerce_entry_id(value: Any) -> int | None:
    """Entry ids are integers; integral floats from JS clients are accepted."""
    return _as_integral(value)


def coerce_order(value: Any) -> tuple[int, ...] | None:
    """
    Decode a reorder request.

    Returns None when the payload is not a list. Non-integer items are
    skipped; the reducer handles unknown and duplicate ids.
    """
    if not isinstance(value, list):
        return None
    ids: list[int] = []
    for item in value:
        entry_id = _as_integral(item)
        if entry_id is not None:
            ids.append(entry_id)
    return tuple(ids)


def coerce_bins(value: Any) -> tuple[int, ...] | None:
    """
    Decode a waterfall frame.

    Must be a non-empty list of at most WATERFALL_MAX_INBOUND_BINS
    integers in 0..255. Any bad element rejects the whole frame.
    """
    if not isinstance(value, list):
        return None
    if not value or len(value) > WATERFALL_MAX_INBOUND_BINS:
        return None
    bins: list[int] = []
    for item in value:
        magnitude = _as_integral(item)
        if magnitude is None or not 0 <= magnitude <= BYTE_MAGNITUDE_MAX:
            return None
        bins.append(magnitude)
    return tuple(bins)


def validate_config_value(field_name: str, value: Any) -> float | None:
    """
    Check one config field against its bound.

    Returns the accepted value, or None for unknown fields, non-numbers,
    non-finite numbers and out-of-bound values.
    """
    bounds = CONFIG_FIELD_BOUNDS.get(field_name)
    if bounds is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    low, high = bounds
    if not low <= value <= high:
        return None
    return value


def validate_config_partial(partial: Mapping[str, Any]) -> dict[str, float]:
    """Keep only the known, in-bound fields of a partial update."""
    accepted: dict[str, float] = {}
    for field_name, value in partial.items():
        checked = validate_config_value(field_name, value)
        if checked is not None:
            accepted[field_name] = checked
    return accepted
