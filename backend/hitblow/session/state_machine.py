"""
Game state machine: secret commitment, readiness, start and turn alternation.

States move strictly forward: waiting -> playing -> finished. Every write is
conditional on the fields the decision was based on, so an interleaved write
by the other client makes the operation fail instead of committing against
stale state.

Who won is never stored. Clients derive it from the guess histories with
``hitblow.logic.outcome``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from hitblow.logic.exceptions import InvalidGuessError
from hitblow.logic.rules import validate_guess
from hitblow.session.exceptions import (
    GameAlreadyStartedError,
    GameNotInProgressError,
    NotYourTurnError,
    PlayerNotFoundError,
    PlayersNotReadyError,
    SecretAlreadySetError,
    SecretsMissingError,
)
from hitblow.session.models import Role, Session, SessionStatus
from hitblow.session.repository import SessionRepository

if TYPE_CHECKING:
    from hitblow.session.context import SessionContext

logger = structlog.get_logger()


def _resolve_role(session: Session, uid: str) -> Role:
    role = session.role_of(uid)
    if role is None:
        raise PlayerNotFoundError(session.id, uid)
    return role


def _require_waiting(session: Session) -> None:
    if session.status != SessionStatus.WAITING:
        raise GameAlreadyStartedError(session.id, session.status.value)


def _require_playing(session: Session) -> None:
    if session.status != SessionStatus.PLAYING:
        raise GameNotInProgressError(session.id, session.status.value)


class GameStateMachine:
    """Drive one session through its pre-game handshake and turns.

    Turn order is enforced when ``settings.enforce_turn_order`` is set. With it
    off, turn order is only a convention the clients apply to their own
    input, and any seated player may guess.
    """

    def __init__(self, context: SessionContext) -> None:
        self._context = context
        self._sessions = SessionRepository(context)

    async def set_secret(self, session_id: str, uid: str, secret: str) -> None:
        """Commit a player's secret. Allowed once, before the game starts."""
        session = await self._sessions.load(session_id)
        role = _resolve_role(session, uid)

        def check(current: Session) -> None:
            _require_waiting(current)
            player = current.player(role)
            if player is None or player.uid != uid:
                raise PlayerNotFoundError(session_id, uid)
            if player.secret is not None:
                raise SecretAlreadySetError(session_id, uid)

        check(session)
        reason = validate_guess(secret, session.config)
        if reason is not None:
            raise InvalidGuessError(reason, secret)

        await self._sessions.commit(
            session_id,
            {f"{role}.secret": secret},
            expected={
                "status": SessionStatus.WAITING.value,
                f"{role}.uid": uid,
                f"{role}.secret": None,
            },
            recheck=check,
        )
        logger.info("secret committed", session_id=session_id, uid=uid, role=role)

    async def set_ready(self, session_id: str, uid: str, value: bool) -> None:  # noqa: FBT001
        """Set a player's readiness flag while the session is waiting."""
        session = await self._sessions.load(session_id)
        role = _resolve_role(session, uid)

        def check(current: Session) -> None:
            _require_waiting(current)
            player = current.player(role)
            if player is None or player.uid != uid:
                raise PlayerNotFoundError(session_id, uid)

        check(session)
        await self._sessions.commit(
            session_id,
            {f"{role}.is_ready": value},
            expected={"status": SessionStatus.WAITING.value, f"{role}.uid": uid},
            recheck=check,
        )
        logger.info("ready changed", session_id=session_id, uid=uid, role=role, ready=value)

    async def start_game(self, session_id: str) -> None:
        """Move a waiting session to playing once both players are set.

        Starting an already playing session is a no-op, since both clients
        may issue the start.
        """
        session = await self._sessions.load(session_id)
        if session.status == SessionStatus.PLAYING:
            logger.debug("start ignored, already playing", session_id=session_id)
            return

        def check(current: Session) -> None:
            _require_waiting(current)
            if not current.all_ready:
                raise PlayersNotReadyError(session_id)
            if not current.secrets_set:
                raise SecretsMissingError(session_id)

        check(session)
        guest = session.guest
        if guest is None:
            raise PlayersNotReadyError(session_id)

        def recheck(current: Session) -> bool:
            if current.status == SessionStatus.PLAYING:
                return True
            check(current)
            return False

        started = await self._sessions.commit(
            session_id,
            {"status": SessionStatus.PLAYING.value},
            expected={
                "status": SessionStatus.WAITING.value,
                "host.is_ready": True,
                "host.secret": session.host.secret,
                "guest.uid": guest.uid,
                "guest.is_ready": True,
                "guest.secret": guest.secret,
            },
            recheck=recheck,
        )
        if started:
            logger.info("game started", session_id=session_id, host_uid=session.host.uid, guest_uid=guest.uid)

    async def submit_guess(self, session_id: str, uid: str, guess: str) -> None:
        """Append a guess to the caller's history, stamp its session-wide slot and pass the turn."""
        session = await self._sessions.load(session_id)
        role = _resolve_role(session, uid)
        enforce_turns = self._context.settings.enforce_turn_order

        def check(current: Session) -> None:
            _require_playing(current)
            player = current.player(role)
            if player is None or player.uid != uid:
                raise PlayerNotFoundError(session_id, uid)
            if enforce_turns and current.current_turn != role:
                raise NotYourTurnError(session_id, uid)

        check(session)
        reason = validate_guess(guess, session.config)
        if reason is not None:
            raise InvalidGuessError(reason, guess)

        player = session.player(role)
        if player is None:
            raise PlayerNotFoundError(session_id, uid)
        expected: dict[str, object] = {
            "status": SessionStatus.PLAYING.value,
            f"{role}.uid": uid,
            f"{role}.guesses": list(player.guesses),
            "guess_count": session.guess_count,
        }
        if enforce_turns:
            expected["current_turn"] = role.value

        await self._sessions.commit(
            session_id,
            {
                f"{role}.guesses": [*player.guesses, guess],
                f"{role}.guess_slots": [*player.guess_slots, session.guess_count],
                "guess_count": session.guess_count + 1,
                "current_turn": role.opponent.value,
            },
            expected=expected,
            recheck=check,
        )
        logger.info(
            "guess submitted",
            session_id=session_id,
            uid=uid,
            role=role,
            turn=player.turn_count + 1,
        )

    async def finish_game(self, session_id: str) -> None:
        """Mark a playing session finished. No-op if already finished."""
        session = await self._sessions.load(session_id)
        if session.status == SessionStatus.FINISHED:
            return
        _require_playing(session)

        def recheck(current: Session) -> bool:
            if current.status == SessionStatus.FINISHED:
                return True
            _require_playing(current)
            return False

        if await self._sessions.commit(
            session_id,
            {"status": SessionStatus.FINISHED.value},
            expected={"status": SessionStatus.PLAYING.value},
            recheck=recheck,
        ):
            logger.info("game finished", session_id=session_id)
