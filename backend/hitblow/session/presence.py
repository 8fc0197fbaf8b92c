"""Best-effort player liveness via periodic heartbeat writes."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog

from hitblow.session.exceptions import SessionError
from hitblow.session.repository import SessionRepository
from shared.dal import StoreError

if TYPE_CHECKING:
    from hitblow.session.context import SessionContext

PRESENCE_THRESHOLD_SECONDS = 30.0

logger = structlog.get_logger()


def is_online(last_active_at: float, *, now: float, threshold: float = PRESENCE_THRESHOLD_SECONDS) -> bool:
    """Check whether a heartbeat at ``last_active_at`` is recent enough."""
    return now - last_active_at < threshold


class PresenceTracker:
    """Write heartbeats for local players and judge staleness of others.

    Heartbeat failures never propagate: presence is advisory and must not
    block gameplay. Call ``stop`` (or ``stop_all``) when leaving a session,
    including on error paths, so no heartbeat task outlives the attachment.
    """

    def __init__(self, context: SessionContext) -> None:
        self._context = context
        self._sessions = SessionRepository(context)
        self._tasks: dict[tuple[str, str], asyncio.Task[None]] = {}  # (session_id, uid) -> task

    async def heartbeat(self, session_id: str, uid: str) -> None:
        """Stamp ``last_active_at`` on the caller's seat, ignoring failures."""
        try:
            session = await self._sessions.get(session_id)
            if session is None:
                logger.debug("heartbeat skipped, session gone", session_id=session_id, uid=uid)
                return
            role = session.role_of(uid)
            if role is None:
                logger.debug("heartbeat skipped, not seated", session_id=session_id, uid=uid)
                return
            await self._sessions.update(
                session_id,
                {f"{role}.last_active_at": self._context.now()},
                expected={f"{role}.uid": uid},
            )
        except (StoreError, SessionError):
            logger.debug("heartbeat failed", session_id=session_id, uid=uid, exc_info=True)

    def is_online(self, last_active_at: float) -> bool:
        return is_online(
            last_active_at,
            now=self._context.now(),
            threshold=self._context.settings.presence_threshold_seconds,
        )

    def is_running(self, session_id: str, uid: str) -> bool:
        task = self._tasks.get((session_id, uid))
        return task is not None and not task.done()

    def start(self, session_id: str, uid: str) -> None:
        """Start heartbeating for a player. Idempotent."""
        if self.is_running(session_id, uid):
            return
        self._tasks[(session_id, uid)] = asyncio.create_task(self._heartbeat_loop(session_id, uid))

    async def stop(self, session_id: str, uid: str) -> None:
        task = self._tasks.pop((session_id, uid), None)
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def stop_all(self) -> None:
        for session_id, uid in list(self._tasks):
            await self.stop(session_id, uid)

    async def _heartbeat_loop(self, session_id: str, uid: str) -> None:
        """Heartbeat immediately, then once per interval."""
        interval = self._context.settings.heartbeat_interval_seconds
        while True:
            await self.heartbeat(session_id, uid)
            await asyncio.sleep(interval)
