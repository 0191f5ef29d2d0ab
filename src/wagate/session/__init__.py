"""Messaging session lifecycle: the connection handshake and event bridge."""

from wagate.session.bridge import (
    ConnectionEventBridge,
    get_bridge,
    install_bridge,
    shutdown_bridge,
)
from wagate.session.engine import SessionCallbacks, SessionEngine
from wagate.session.handshake import SessionHandshake

__all__ = [
    "ConnectionEventBridge",
    "SessionCallbacks",
    "SessionEngine",
    "SessionHandshake",
    "get_bridge",
    "install_bridge",
    "shutdown_bridge",
]
