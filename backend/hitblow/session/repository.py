"""Session persistence on top of the shared document store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from hitblow.session.exceptions import SessionConflictError, SessionNotFoundError
from hitblow.session.models import SESSIONS_COLLECTION, Session, SessionStatus
from shared.dal import DocumentNotFoundError, PreconditionFailedError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from hitblow.session.context import SessionContext

logger = structlog.get_logger()


class SessionRepository:
    """Typed access to the ``sessions`` collection.

    Every update stamps ``updated_at``. Conditional writes go through
    ``commit``, which turns a lost race into the domain error that describes
    the state the winner left behind.
    """

    def __init__(self, context: SessionContext) -> None:
        self._context = context
        self._store = context.store

    def new_id(self) -> str:
        return self._store.new_id(SESSIONS_COLLECTION)

    async def get(self, session_id: str) -> Session | None:
        document = await self._store.get(SESSIONS_COLLECTION, session_id)
        return Session.from_document(document) if document is not None else None

    async def load(self, session_id: str) -> Session:
        """Like get, but raise SessionNotFoundError for a missing session."""
        session = await self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def create(self, session: Session) -> None:
        await self._store.set(SESSIONS_COLLECTION, session.id, session.to_document())

    async def delete(self, session_id: str) -> None:
        await self._store.delete(SESSIONS_COLLECTION, session_id)

    async def update(
        self,
        session_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any] | None = None,
    ) -> None:
        """Write field paths plus a fresh ``updated_at``.

        Raises PreconditionFailedError when ``expected`` does not hold.
        """
        fields = {**fields, "updated_at": self._context.now()}
        try:
            await self._store.update(SESSIONS_COLLECTION, session_id, fields, expected=expected)
        except DocumentNotFoundError as exc:
            raise SessionNotFoundError(session_id) from exc

    async def commit(
        self,
        session_id: str,
        fields: Mapping[str, Any],
        *,
        expected: Mapping[str, Any],
        recheck: Callable[[Session], bool | None],
    ) -> bool:
        """Conditionally write ``fields``; classify a lost race.

        On a failed precondition the session is re-read and passed to
        ``recheck``, which raises the error matching the new state, or returns
        True when the concurrent writer already produced the state this write
        wanted. Returns whether this call wrote. A loss that ``recheck``
        neither explains nor accepts raises SessionConflictError.
        """
        try:
            await self.update(session_id, fields, expected=expected)
        except PreconditionFailedError as exc:
            logger.info("conditional write lost", session_id=session_id, field_path=exc.field_path)
            if recheck(await self.load(session_id)):
                return False
            raise SessionConflictError(session_id, f"concurrent update to '{exc.field_path}'") from exc
        return True

    async def list_by_status(
        self,
        status: SessionStatus,
        limit: int,
        *,
        open_seat: bool = False,
    ) -> list[Session]:
        """Sessions with the given status, newest first.

        With ``open_seat`` only sessions whose guest seat is empty are returned.
        """
        filters: dict[str, Any] = {"status": status.value}
        if open_seat:
            filters["guest"] = None
        documents = await self._store.query(
            SESSIONS_COLLECTION,
            filters=filters,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [Session.from_document(document) for document in documents]

    def subscribe(self, session_id: str, callback: Callable[[Session | None], None]) -> Callable[[], None]:
        """Forward store snapshots of one session as Session models."""

        def on_snapshot(document: dict[str, Any] | None) -> None:
            callback(Session.from_document(document) if document is not None else None)

        return self._store.subscribe(SESSIONS_COLLECTION, session_id, on_snapshot)
