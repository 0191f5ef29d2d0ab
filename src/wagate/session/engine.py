"""Interface to the messaging session engine.

The engine that speaks the messaging protocol is an external collaborator.
wagate only relies on the narrow surface declared by :class:`SessionEngine`:
query whether a session is active, start and stop sessions, and subscribe
to per-session lifecycle events.

Engines may invoke callbacks and listeners from any thread; consumers in
this package hand them over to their event loop with
``loop.call_soon_threadsafe``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable

SessionListener = Callable[[str], Any]
"""Receives the session name of a lifecycle event."""

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class SessionCallbacks:
    """Callbacks passed to :meth:`SessionEngine.start` for one session.

    Attributes:
        on_connected: Called with no arguments once the session is
            authenticated.
        on_qr_updated: Called with a pairing payload each time the engine
            issues a new QR code. May fire several times before connection.
    """

    on_connected: Callable[[], None]
    on_qr_updated: Callable[[str], None]


class SessionEngine(ABC):
    """Abstract messaging session engine.

    The engine guarantees at most one live session per name. Starting a
    session that is already starting or active is the engine's concern.
    """

    @abstractmethod
    def is_active(self, session_name: str) -> bool:
        """Return whether a session with this name exists and is authenticated."""
        ...

    @abstractmethod
    async def start(self, session_name: str, callbacks: SessionCallbacks) -> None:
        """Begin connecting *session_name*.

        The engine later calls ``callbacks.on_connected`` or
        ``callbacks.on_qr_updated``. Returning from this coroutine does not
        imply either has fired.
        """
        ...

    @abstractmethod
    async def stop(self, session_name: str) -> None:
        """Disconnect and forget *session_name*."""
        ...

    @abstractmethod
    def on_connecting(self, listener: SessionListener) -> Unsubscribe:
        ...

    @abstractmethod
    def on_connected(self, listener: SessionListener) -> Unsubscribe:
        ...

    @abstractmethod
    def on_disconnected(self, listener: SessionListener) -> Unsubscribe:
        ...
