"""Push delivery of session snapshots to clients."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from hitblow.session.repository import SessionRepository

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from hitblow.session.context import SessionContext
    from hitblow.session.models import Session

logger = structlog.get_logger()


class Subscription:
    """Handle for one snapshot listener. Cancel exactly once to release it."""

    def __init__(self, session_id: str, unsubscribe: Callable[[], None]) -> None:
        self.session_id = session_id
        self._unsubscribe: Callable[[], None] | None = unsubscribe

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def cancel(self) -> None:
        if self._unsubscribe is None:
            logger.warning("subscription already cancelled", session_id=self.session_id)
            return
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        unsubscribe()


class SnapshotStream:
    """Async iterator over the snapshots of one session.

    Holds at most one undelivered snapshot: a newer snapshot replaces an
    older one the consumer has not read yet, so a slow consumer always sees
    the latest state. Yields None once when the session is deleted, then stops.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self._pending: Session | None = None
        self._has_pending = asyncio.Event()
        self._deleted = False
        self._closed = False

    def push(self, session: Session | None) -> None:
        if self._closed or self._deleted:
            return
        self._pending = session
        self._deleted = session is None
        self._has_pending.set()

    def close(self) -> None:
        self._closed = True
        self._has_pending.set()

    def __aiter__(self) -> SnapshotStream:
        return self

    async def __anext__(self) -> Session | None:
        if self._closed:
            raise StopAsyncIteration
        await self._has_pending.wait()
        if self._closed:
            raise StopAsyncIteration
        self._has_pending.clear()
        session, self._pending = self._pending, None
        if session is None:
            # Deletion is terminal: yield it once, then stop.
            self._closed = True
        return session


class SessionSync:
    """Subscribe clients to the committed state of a session."""

    def __init__(self, context: SessionContext) -> None:
        self._sessions = SessionRepository(context)

    def subscribe(self, session_id: str, on_change: Callable[[Session | None], None]) -> Subscription:
        """Call ``on_change`` with the current snapshot and every later change.

        Deletion is delivered as None. The returned subscription must be
        cancelled when the caller loses interest in the session.
        """
        subscription = Subscription(session_id, self._sessions.subscribe(session_id, on_change))
        logger.debug("subscribed to session", session_id=session_id)
        return subscription

    @contextlib.asynccontextmanager
    async def watch(self, session_id: str) -> AsyncIterator[SnapshotStream]:
        """Stream snapshots for the duration of the ``async with`` block."""
        stream = SnapshotStream(session_id)
        subscription = self.subscribe(session_id, stream.push)
        try:
            yield stream
        finally:
            subscription.cancel()
            stream.close()
