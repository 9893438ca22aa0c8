"""
remote_cdp/data_models/relay_session.py

Lifecycle states of a WebSocket relay session.
"""

from enum import StrEnum


class RelaySessionState(StrEnum):
    """
    Connecting -> Open -> Closing -> Closed.
    Frames are only forwarded while Open.
    """
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
