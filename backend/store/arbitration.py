"""
Audio-owner arbitration.

A single-writer token with no queueing: a claim either wins, re-confirms
an existing hold, or fails. There is no wait-list, no timeout and no
automatic reassignment after release.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum

from store.state_dataclass import PileupState


class ClaimOutcome(str, Enum):
    """Result of a claim attempt."""

    GRANTED = "GRANTED"
    ALREADY_OWNER = "ALREADY_OWNER"
    CONFLICT = "CONFLICT"


def claim(state: PileupState, session_id: int) -> tuple[PileupState, ClaimOutcome]:
    """
    Try to take the audio-owner token.

    GRANTED: slot was open, now held by session_id.
    ALREADY_OWNER: idempotent success, state unchanged.
    CONFLICT: someone else holds it, state unchanged.
    """
    if state.audio_owner_id is None:
        return replace(state, audio_owner_id=session_id), ClaimOutcome.GRANTED

    if state.audio_owner_id == session_id:
        return state, ClaimOutcome.ALREADY_OWNER

    return state, ClaimOutcome.CONFLICT


def release(state: PileupState, session_id: int) -> tuple[PileupState, bool]:
    """
    Give up the token.

    Only the holder can clear it. Returns (new_state, cleared).
    """
    if state.audio_owner_id != session_id:
        return state, False
    return replace(state, audio_owner_id=None), True
