"""Forward session lifecycle events to registered sinks.

The session engine emits "connecting", "connected", and "disconnected"
for every session it manages. :class:`ConnectionEventBridge` subscribes to
those three streams, turns each emission into a
:class:`~wagate.models.SessionEvent`, logs it, and hands it to every sink.

Events are queued on the bridge's event loop and drained by a single
worker task. Every sink therefore sees events in the order the engine
emitted them, and a slow async sink never blocks the engine's callback.

A gateway process normally runs one bridge for its whole lifetime::

    bridge = install_bridge(engine, [dispatcher.session_sink()])
    ...
    await shutdown_bridge()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Iterable, Optional

from wagate.exceptions import GatewayError
from wagate.models import SessionEvent, SessionStatus
from wagate.session.engine import SessionEngine, Unsubscribe

logger = logging.getLogger(__name__)

Sink = Callable[[SessionEvent], Any]
"""Receives a :class:`SessionEvent`. May be a plain function or a coroutine function."""


class ConnectionEventBridge:
    """Relay engine lifecycle events to sinks, in order, exactly once each.

    Args:
        engine: The session engine to subscribe to.
        sinks: Initial sinks. More can be added with :meth:`add_sink`.
    """

    def __init__(self, engine: SessionEngine, sinks: Iterable[Sink] = ()) -> None:
        self._engine = engine
        self._sinks: list[Sink] = list(sinks)
        self._unsubscribers: list[Unsubscribe] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue[SessionEvent]] = None
        self._worker: Optional[asyncio.Task[None]] = None
        self._accepting = False

    @property
    def started(self) -> bool:
        return self._accepting

    def add_sink(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def start(self) -> None:
        """Subscribe to the engine's three lifecycle streams.

        Must be called from a running event loop. Calling it again while
        started does nothing.
        """
        if self._accepting:
            return

        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._drain())
        self._accepting = True

        self._unsubscribers = [
            self._engine.on_connecting(self._listener(SessionStatus.CONNECTING)),
            self._engine.on_connected(self._listener(SessionStatus.CONNECTED)),
            self._engine.on_disconnected(self._listener(SessionStatus.DISCONNECTED)),
        ]
        logger.debug("Connection event bridge started with %d sink(s)", len(self._sinks))

    async def close(self) -> None:
        """Unsubscribe from the engine and deliver events already received."""
        if not self._accepting:
            return

        self._accepting = False
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

        assert self._queue is not None and self._worker is not None
        # Let puts already scheduled from other threads land before joining.
        await asyncio.sleep(0)
        await self._queue.join()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._queue = None
        logger.debug("Connection event bridge closed")

    async def __aenter__(self) -> ConnectionEventBridge:
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _listener(self, status: SessionStatus) -> Callable[[str], None]:
        def _receive(session_name: str) -> None:
            if not self._accepting or self._loop is None or self._queue is None:
                return
            event = SessionEvent(session=session_name, status=status)
            if _running_loop() is self._loop:
                self._queue.put_nowait(event)
            else:
                self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

        return _receive

    async def _drain(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            event = await queue.get()
            try:
                logger.info("session: '%s' %s", event.session, event.status.value)
                for sink in list(self._sinks):
                    await self._deliver(sink, event)
            finally:
                queue.task_done()

    async def _deliver(self, sink: Sink, event: SessionEvent) -> None:
        try:
            result = sink(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(
                "Session event sink %r failed for session '%s'", sink, event.session
            )


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


# --- Process-scoped bridge ---

_bridge: Optional[ConnectionEventBridge] = None


def install_bridge(
    engine: SessionEngine, sinks: Iterable[Sink] = ()
) -> ConnectionEventBridge:
    """Create, start, and register the process-wide bridge.

    Raises:
        GatewayError: If a bridge is already installed.
    """
    global _bridge
    if _bridge is not None:
        raise GatewayError("A connection event bridge is already installed")
    bridge = ConnectionEventBridge(engine, sinks)
    bridge.start()
    _bridge = bridge
    return bridge


def get_bridge() -> Optional[ConnectionEventBridge]:
    return _bridge


async def shutdown_bridge() -> None:
    """Close and unregister the process-wide bridge, if any."""
    global _bridge
    bridge, _bridge = _bridge, None
    if bridge is not None:
        await bridge.close()
