"""
Connection status tracking for participant sessions.

Transport lifecycle is tracked separately from the shared pileup state:
connection_status: UP | CLOSING | DOWN

This is pure data owned by the session, not by the reducer.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Transport lifecycle status.

    Only UP sessions receive messages; everything else is "tearing down"
    and sends to it are silently dropped.
    """
    UP = "UP"              # Accepted and writable
    CLOSING = "CLOSING"    # A send failed or close started; no more writes
    DOWN = "DOWN"          # Removed from the registry
