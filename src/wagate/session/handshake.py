"""Session connection handshake.

Starting a messaging session is bimodal. The engine either connects
straight away (the session was already paired) or issues a QR pairing
payload that the caller must present while the engine waits for
out-of-band confirmation.

:class:`SessionHandshake` turns that into a single awaited result:

- :class:`~wagate.models.Connected` when the engine reports the session
  active, or fires "connected" first;
- :class:`~wagate.models.PairingRequired` when "QR updated" fires first.

The two engine callbacks feed two one-shot futures. Whichever is settled
first wins; the other is cancelled and both callbacks are detached, so
later emissions (QR refreshes, the eventual "connected") are dropped
instead of accumulating across repeated start calls.

There is no timeout here. If the engine never emits either signal the
call never resolves; callers that need a bound wrap it in
:func:`asyncio.wait_for`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from wagate.models import Connected, HandshakeResult, PairingRequired, Tenant
from wagate.session.engine import SessionCallbacks, SessionEngine

logger = logging.getLogger(__name__)


class _HandshakeRace:
    """Two one-shot channels of which only the first emission is kept."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self.connected: asyncio.Future[None] = loop.create_future()
        self.qr: asyncio.Future[str] = loop.create_future()
        self._closed = False

    def callbacks(self) -> SessionCallbacks:
        return SessionCallbacks(
            on_connected=self._on_connected,
            on_qr_updated=self._on_qr_updated,
        )

    def _on_connected(self) -> None:
        if not self._closed:
            self._loop.call_soon_threadsafe(self._settle, self.connected, None)

    def _on_qr_updated(self, qr: str) -> None:
        if not self._closed:
            self._loop.call_soon_threadsafe(self._settle, self.qr, qr)

    def _settle(self, future: asyncio.Future[Any], value: Any) -> None:
        if self._closed or future.done():
            return
        future.set_result(value)
        self._closed = True

    @property
    def channels(self) -> set[asyncio.Future[Any]]:
        return {self.connected, self.qr}

    def settled(self, done: set[asyncio.Future[Any]]) -> bool:
        return self.connected in done or self.qr in done

    def release(self) -> None:
        """Detach both callbacks and cancel whichever channel did not fire."""
        self._closed = True
        for future in self.channels:
            if not future.done():
                future.cancel()


class SessionHandshake:
    """Start sessions on a :class:`~wagate.session.engine.SessionEngine`.

    Concurrent starts for the same session are not deduplicated here; the
    engine's single-session guarantee covers them.

    Args:
        engine: The session engine.

    Example::

        handshake = SessionHandshake(engine)
        result = await handshake.start("alice")
        if isinstance(result, PairingRequired):
            show_qr(result.artifact)
    """

    def __init__(self, engine: SessionEngine) -> None:
        self._engine = engine
        self._background: set[asyncio.Task[None]] = set()

    async def start(self, session_name: str) -> HandshakeResult:
        """Start *session_name* and return the first outcome.

        An active session short-circuits to :class:`~wagate.models.Connected`
        without calling the engine's start operation. Exceptions raised by
        the engine's start propagate unchanged, unless a signal was emitted
        before the failure; the signal then wins and the failure is logged.

        When pairing is required the engine keeps connecting in the
        background after this method returns.
        """
        if self._engine.is_active(session_name):
            logger.info("Session '%s' already connected", session_name)
            return Connected(session_name=session_name)

        loop = asyncio.get_running_loop()
        race = _HandshakeRace(loop)
        start_task: asyncio.Task[None] = loop.create_task(
            self._engine.start(session_name, race.callbacks())
        )

        try:
            pending: set[asyncio.Future[Any]] = {start_task, *race.channels}
            while True:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                if race.settled(done):
                    break
                if start_task in done:
                    start_task.result()
        except BaseException:
            if not start_task.done():
                start_task.cancel()
            raise
        finally:
            race.release()

        if start_task.done():
            self._report_late_failure(session_name, start_task)
        else:
            self._track(session_name, start_task)

        if race.qr.done() and not race.qr.cancelled():
            logger.info("Session '%s' requires pairing", session_name)
            return PairingRequired(session_name=session_name, artifact=race.qr.result())
        logger.info("Session '%s' connected", session_name)
        return Connected(session_name=session_name)

    async def start_for_tenant(self, tenant: Tenant) -> HandshakeResult:
        return await self.start(tenant.effective_session_name)

    async def stop(self, session_name: str) -> None:
        """Disconnect *session_name* through the engine."""
        await self._engine.stop(session_name)
        logger.info("Session '%s' stopped", session_name)

    async def stop_for_tenant(self, tenant: Tenant) -> None:
        await self.stop(tenant.effective_session_name)

    def is_connected(self, session_name: str) -> bool:
        return self._engine.is_active(session_name)

    @property
    def background_starts(self) -> int:
        """Number of engine start operations still running after their handshake."""
        return len(self._background)

    def _track(self, session_name: str, task: asyncio.Task[None]) -> None:
        self._background.add(task)

        def _done(finished: asyncio.Task[None]) -> None:
            self._background.discard(finished)
            self._report_late_failure(session_name, finished)

        task.add_done_callback(_done)

    @staticmethod
    def _report_late_failure(session_name: str, task: asyncio.Task[None]) -> None:
        """Log an engine start that failed after a channel already won."""
        if task.cancelled():
            return
        exc: Optional[BaseException] = task.exception()
        if exc is not None:
            logger.warning(
                "Session '%s' start failed after handshake: %s", session_name, exc
            )
