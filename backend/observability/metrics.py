"""
Timing helpers for observability.

- Measure durations using monotonic time (immune to clock changes)
- Emit one METRIC_TIMER event per measurement via observability.logger
- Prefer the `timed()` context manager so timers cannot leak

Used by the playback scheduler to record how long each callsign really
took to render, which can be compared with the nominal Morse duration.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from itertools import count
from typing import Any, Iterator

from observability.logger import log_event


# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}
_timer_ids = count(1)


def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns an opaque timer id for stop_timer(). Callers MUST stop the
    timer in a finally block unless using `timed()`.
    """
    timer_id = f"timer_{next(_timer_ids)}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    session_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a metric event.

    Returns duration_ms if the timer existed, else None.
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        # Wall-clock for correlation; duration itself is monotonic
        "ts_ms": time.time_ns() // 1_000_000,
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "details": details or {},
    })

    return duration_ms


@contextmanager
def timed(
    name: str,
    *,
    session_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Measure the enclosed block.

    The timer is always stopped and the metric emitted exactly once,
    including when the block raises or is cancelled.

    Usage:
        with timed("callsign_render", details={"entry_id": entry.id}):
            await render(...)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(timer_id, session_id=session_id, details=details)


def active_timer_count() -> int:
    """Number of started-but-not-stopped timers (leak detection in tests)."""
    return len(_active_timers)
