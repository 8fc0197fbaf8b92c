"""Session lifecycle: creation, listing, joining, leaving and teardown."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from hitblow.logic.rules import validate_config
from hitblow.session.exceptions import (
    PlayerNotFoundError,
    SessionFullError,
    SessionNotJoinableError,
)
from hitblow.session.models import Role, Session, SessionStatus, new_player
from hitblow.session.repository import SessionRepository

if TYPE_CHECKING:
    from hitblow.logic.settings import GameConfig
    from hitblow.session.context import SessionContext

logger = structlog.get_logger()


class SessionLifecycleManager:
    """Create, list, join and tear down session records.

    Capacity and state checks are re-asserted as preconditions of the write,
    so two clients joining the same session at once cannot both take the
    guest seat: the second conditional write fails and is reported as
    SessionFullError.
    """

    def __init__(self, context: SessionContext) -> None:
        self._context = context
        self._sessions = SessionRepository(context)

    async def create_session(self, config: GameConfig, host_uid: str) -> str:
        """Create a waiting session hosted by ``host_uid``. Return its id."""
        validate_config(config)
        now = self._context.now()
        session = Session(
            id=self._sessions.new_id(),
            status=SessionStatus.WAITING,
            config=config,
            host=new_player(host_uid, Role.HOST, now),
            current_turn=Role.HOST,
            created_at=now,
            updated_at=now,
        )
        await self._sessions.create(session)
        logger.info(
            "session created",
            session_id=session.id,
            host_uid=host_uid,
            digits=config.digits,
            allow_duplicate=config.allow_duplicate,
        )
        return session.id

    async def get_session(self, session_id: str) -> Session | None:
        return await self._sessions.get(session_id)

    async def join_session(self, session_id: str, guest_uid: str) -> Session:
        """Take the guest seat of a waiting session. Return the joined session."""
        session = await self._sessions.load(session_id)
        self._check_joinable(session, guest_uid)

        guest = new_player(guest_uid, Role.GUEST, self._context.now())
        await self._sessions.commit(
            session_id,
            {"guest": guest.model_dump(mode="json")},
            expected={"guest": None, "status": SessionStatus.WAITING.value},
            recheck=lambda fresh: self._check_joinable(fresh, guest_uid),
        )
        logger.info("guest joined session", session_id=session_id, guest_uid=guest_uid)
        return await self._sessions.load(session_id)

    async def list_waiting_sessions(self, limit: int | None = None) -> list[Session]:
        """Return joinable sessions (waiting, guest seat empty), newest first."""
        if limit is None:
            limit = self._context.settings.waiting_list_limit
        return await self._sessions.list_by_status(SessionStatus.WAITING, limit, open_seat=True)

    async def leave_as_guest(self, session_id: str, guest_uid: str | None = None) -> None:
        """Clear the guest seat.

        A waiting session becomes joinable again. A game in progress cannot
        go back to waiting, so it is finished instead. When ``guest_uid`` is
        given the write only happens if that player still holds the seat.
        """
        session = await self._sessions.load(session_id)
        if session.guest is None:
            if guest_uid is not None:
                raise PlayerNotFoundError(session_id, guest_uid)
            return
        if guest_uid is not None and session.guest.uid != guest_uid:
            raise PlayerNotFoundError(session_id, guest_uid)

        fields: dict[str, object] = {"guest": None}
        if session.status == SessionStatus.PLAYING:
            fields["status"] = SessionStatus.FINISHED.value

        def recheck(fresh: Session) -> None:
            if fresh.guest is None or fresh.guest.uid != session.guest.uid:
                raise PlayerNotFoundError(session_id, session.guest.uid)

        await self._sessions.commit(
            session_id,
            fields,
            expected={"guest.uid": session.guest.uid, "status": session.status.value},
            recheck=recheck,
        )
        logger.info(
            "guest left session",
            session_id=session_id,
            guest_uid=session.guest.uid,
            status=fields.get("status", session.status.value),
        )

    async def delete_session(self, session_id: str) -> None:
        """Remove the record for both players (host exit)."""
        await self._sessions.delete(session_id)
        logger.info("session deleted", session_id=session_id)

    @staticmethod
    def _check_joinable(session: Session, guest_uid: str) -> None:
        if session.guest is not None:
            raise SessionFullError(session.id)
        if session.status != SessionStatus.WAITING:
            raise SessionNotJoinableError(session.id, f"cannot join while {session.status.value}")
        if session.host.uid == guest_uid:
            raise SessionNotJoinableError(session.id, "host cannot join as guest")
