"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- Events may carry a "level" (DEBUG/INFO/WARNING/ERROR); default INFO
- Events below the configured threshold are dropped
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}

_DEFAULT_LEVEL = "INFO"


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_threshold: int = _LEVELS[_DEFAULT_LEVEL]


def set_log_level(level: str) -> None:
    """
    Set the minimum level written by log_event().

    Unknown names fall back to INFO.
    """
    global _threshold  # pylint: disable=global-statement
    _threshold = _LEVELS.get(level.upper(), _LEVELS[_DEFAULT_LEVEL])


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, session_id, event_type, etc.

    This function:
    - Filters by level
    - Serializes to JSON
    - Writes exactly one line
    - Never raises
    """
    level = str(event.get("level", _DEFAULT_LEVEL)).upper()
    if _LEVELS.get(level, _LEVELS[_DEFAULT_LEVEL]) < _threshold:
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Logging must never crash the event loop
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
