"""
Cooperative cancellation for playback.

The token is polled, never preemptive: whoever runs the loop checks it
at each decision point, and an element already in flight completes.
"""

from __future__ import annotations


class CancellationToken:
    """
    One-shot stop flag.

    A token is never un-cancelled; a new drain run or render takes a new
    token, so a late check by an older render still sees its own stop.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True
