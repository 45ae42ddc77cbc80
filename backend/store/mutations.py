"""
Backlog and config mutation rules.

Pure functions: (state, args) -> new state. A no-op returns the input
object itself, so callers can detect "nothing changed" with `is`.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, Mapping

from store.state_dataclass import (
    CONFIG_WIRE_FIELDS,
    PileupState,
    QueueEntry,
    SessionConfig,
)
from store.validation import normalize_callsign, validate_config_partial


# =============================================================================
# Backlog
# =============================================================================

def add_entry(
    state: PileupState,
    callsign: Any,
    *,
    submitted_by: int,
    submitted_at: str,
) -> PileupState:
    """
    Append a new entry with a fresh id.

    Callsigns that normalize to empty are rejected (state returned as-is).
    """
    normalized = normalize_callsign(callsign)
    if not normalized:
        return state

    entry = QueueEntry(
        id=state.next_entry_id,
        callsign=normalized,
        submitted_by=submitted_by,
        submitted_at=submitted_at,
    )
    return replace(
        state,
        backlog=state.backlog + (entry,),
        next_entry_id=state.next_entry_id + 1,
    )


def remove_entry(state: PileupState, entry_id: int) -> PileupState:
    """Remove by id. Idempotent: an absent id leaves the state untouched."""
    if not any(entry.id == entry_id for entry in state.backlog):
        return state
    return replace(
        state,
        backlog=tuple(entry for entry in state.backlog if entry.id != entry_id),
    )


def mark_played(state: PileupState, entry_id: int) -> PileupState:
    """The owner finished announcing entry_id; same effect as removal."""
    return remove_entry(state, entry_id)


def clear_backlog(state: PileupState) -> PileupState:
    return replace(state, backlog=())


def reorder_backlog(state: PileupState, order: Iterable[int]) -> PileupState:
    """
    Reorder by the requested ids, then append the stragglers.

    - Requested ids that exist come first, in request order.
    - Unknown ids are ignored; repeated ids count once (first position).
    - Entries the request did not mention keep their prior relative order
      and follow all mentioned ones, so a stale request never drops data.
    """
    by_id = {entry.id: entry for entry in state.backlog}

    ordered: list[QueueEntry] = []
    placed: set[int] = set()
    for entry_id in order:
        entry = by_id.get(entry_id)
        if entry is None or entry_id in placed:
            continue
        ordered.append(entry)
        placed.add(entry_id)

    ordered.extend(entry for entry in state.backlog if entry.id not in placed)
    return replace(state, backlog=tuple(ordered))


# =============================================================================
# Config
# =============================================================================

def update_config(
    config: SessionConfig,
    partial: Mapping[str, Any],
) -> tuple[SessionConfig, tuple[str, ...]]:
    """
    Merge the valid fields of a partial update into the config.

    Returns (new_config, changed_wire_fields). Invalid or unknown fields
    are dropped silently; fields equal to the current value do not count
    as changed. When nothing changed the original config object is
    returned.
    """
    accepted = validate_config_partial(partial)

    changes: dict[str, float] = {}
    for wire_name, value in accepted.items():
        attr = CONFIG_WIRE_FIELDS[wire_name]
        if getattr(config, attr) != value:
            changes[attr] = value

    if not changes:
        return config, ()

    changed_wire = tuple(
        wire for wire, attr in CONFIG_WIRE_FIELDS.items() if attr in changes
    )
    return replace(config, **changes), changed_wire
