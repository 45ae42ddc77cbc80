"""
Morse element durations from words-per-minute (PARIS standard).

unit = 1200 / wpm milliseconds; every other element is a multiple.
"""

from __future__ import annotations

from dataclasses import dataclass

from constants import (
    DAH_UNITS,
    DIT_UNITS,
    INTER_CHAR_GAP_UNITS,
    INTER_WORD_GAP_UNITS,
    INTRA_CHAR_GAP_UNITS,
    MORSE_UNITS_PER_WORD,
    MS_PER_MINUTE,
)


@dataclass(frozen=True)
class MorseTimings:
    """Element durations in milliseconds."""

    unit_ms: float
    dit_ms: float
    dah_ms: float
    intra_char_gap_ms: float
    inter_char_gap_ms: float
    # Never emitted inside a callsign (no space symbol), kept for completeness
    inter_word_gap_ms: float

    @staticmethod
    def from_wpm(wpm: float) -> MorseTimings:
        if wpm <= 0:
            raise ValueError("wpm must be > 0")
        unit = MS_PER_MINUTE / (MORSE_UNITS_PER_WORD * wpm)
        return MorseTimings(
            unit_ms=unit,
            dit_ms=unit * DIT_UNITS,
            dah_ms=unit * DAH_UNITS,
            intra_char_gap_ms=unit * INTRA_CHAR_GAP_UNITS,
            inter_char_gap_ms=unit * INTER_CHAR_GAP_UNITS,
            inter_word_gap_ms=unit * INTER_WORD_GAP_UNITS,
        )
