"""
Playback scheduler state enumeration.

Rules:
- States only; transitions live in the scheduler.
"""

from __future__ import annotations

from enum import Enum


class PlaybackState(str, Enum):
    """
    What the continuous drain loop is doing right now.

    IDLE:
        Not draining (never started, stopped, or ownership lost).

    RENDERING:
        Announcing the head of the backlog.

    WAITING_BETWEEN_ITEMS:
        Inter-item delay after an announcement while more items remain.

    POLLING_EMPTY:
        Backlog empty; re-checking after a short fixed interval.
    """

    IDLE = "IDLE"
    RENDERING = "RENDERING"
    WAITING_BETWEEN_ITEMS = "WAITING_BETWEEN_ITEMS"
    POLLING_EMPTY = "POLLING_EMPTY"
