"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for all behavioral numbers in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final, Mapping, Tuple

# =============================================================================
# Session configuration bounds and defaults
# =============================================================================

WPM_MIN: Final[int] = 5
WPM_MAX: Final[int] = 50
WPM_DEFAULT: Final[int] = 20

DELAY_BETWEEN_ITEMS_MIN_MS: Final[int] = 0
DELAY_BETWEEN_ITEMS_MAX_MS: Final[int] = 10_000
DELAY_BETWEEN_ITEMS_DEFAULT_MS: Final[int] = 1_000

TONE_FREQUENCY_MIN_HZ: Final[int] = 200
TONE_FREQUENCY_MAX_HZ: Final[int] = 1_500
DIT_FREQUENCY_DEFAULT_HZ: Final[int] = 600
DAH_FREQUENCY_DEFAULT_HZ: Final[int] = 600

# Wire field name -> inclusive (min, max)
CONFIG_FIELD_BOUNDS: Final[Mapping[str, Tuple[int, int]]] = {
    "wpm": (WPM_MIN, WPM_MAX),
    "delayBetweenItems": (DELAY_BETWEEN_ITEMS_MIN_MS, DELAY_BETWEEN_ITEMS_MAX_MS),
    "ditFrequency": (TONE_FREQUENCY_MIN_HZ, TONE_FREQUENCY_MAX_HZ),
    "dahFrequency": (TONE_FREQUENCY_MIN_HZ, TONE_FREQUENCY_MAX_HZ),
}

# =============================================================================
# Identity
# =============================================================================

FIRST_SESSION_ID: Final[int] = 1
FIRST_ENTRY_ID: Final[int] = 1

# =============================================================================
# Arbitration
# =============================================================================

CLAIM_CONFLICT_MESSAGE: Final[str] = "Another client is currently the audio output"

# =============================================================================
# Morse timing (PARIS standard: 50 units per word)
# =============================================================================

MS_PER_MINUTE: Final[int] = 60_000
MORSE_UNITS_PER_WORD: Final[int] = 50

DIT_UNITS: Final[int] = 1
DAH_UNITS: Final[int] = 3
INTRA_CHAR_GAP_UNITS: Final[int] = 1
INTER_CHAR_GAP_UNITS: Final[int] = 3
INTER_WORD_GAP_UNITS: Final[int] = 7

# =============================================================================
# Playback scheduling
# =============================================================================

# "Now playing" indicator stays visible this long after a callsign ends
NOW_PLAYING_HOLD_MS: Final[int] = 500

# How often the client re-reads the indicator until the hold expires
NOW_PLAYING_POLL_MS: Final[int] = 50

# Idle re-check interval while continuous playback waits on an empty backlog
EMPTY_BACKLOG_POLL_MS: Final[int] = 100

# =============================================================================
# Tone synthesis
# =============================================================================

TONE_SAMPLE_RATE_HZ: Final[int] = 48_000
TONE_RAMP_MS: Final[float] = 10.0
TONE_AMPLITUDE: Final[float] = 0.5

# =============================================================================
# Spectral relay
# =============================================================================

WATERFALL_SEND_INTERVAL_MS: Final[int] = 100  # ~10 frames per second
WATERFALL_BINS: Final[int] = 128
WATERFALL_MAX_INBOUND_BINS: Final[int] = 4_096

# Capture loop tick (display refresh rate)
WATERFALL_TICK_MS: Final[float] = 1000.0 / 60.0

ANALYSER_FFT_SIZE: Final[int] = 2_048
ANALYSER_SMOOTHING: Final[float] = 0.8
ANALYSER_MIN_DB: Final[float] = -100.0
ANALYSER_MAX_DB: Final[float] = -30.0
CAPTURE_SAMPLE_RATE_HZ: Final[int] = 48_000

BYTE_MAGNITUDE_MAX: Final[int] = 255

# Perceptual brightness curve and palette (base + span per channel)
WATERFALL_GAMMA: Final[float] = 1.4
WATERFALL_COLOR_BASE: Final[Tuple[int, int, int]] = (20, 80, 120)
WATERFALL_COLOR_SPAN: Final[Tuple[int, int, int]] = (80, 160, 135)
WATERFALL_BACKGROUND: Final[Tuple[int, int, int]] = (0, 8, 20)

WATERFALL_DEFAULT_WIDTH: Final[int] = 600
WATERFALL_DEFAULT_HEIGHT: Final[int] = 200

# =============================================================================
# Client transport
# =============================================================================

CLIENT_RECONNECT_DELAY_S: Final[float] = 3.0
DEFAULT_SERVER_URL: Final[str] = "ws://localhost:8000/ws"

# =============================================================================
# Observability
# =============================================================================

LOG_PAYLOAD_PREVIEW_CHARS: Final[int] = 100
