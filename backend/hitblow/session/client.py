"""Per-client facade: one principal playing one session at a time.

MatchClient wires the lifecycle manager, state machine, presence tracker and
realtime sync for a single uid. ``attach`` scopes the heartbeat task and the
snapshot subscription to an ``async with`` block, so both are released when
the client leaves a session, on error paths too.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from hitblow.logic.exceptions import InvalidGuessError
from hitblow.logic.outcome import GuessRecord, MatchOutcome, determine_outcome, score_guesses
from hitblow.logic.rules import generate_secret, is_turn_limit_reached, validate_guess
from hitblow.logic.settings import DEFAULT_CONFIG, GameConfig
from hitblow.session.exceptions import (
    GameOverError,
    PlayerNotFoundError,
    SessionNotFoundError,
    TurnLimitReachedError,
)
from hitblow.session.lifecycle import SessionLifecycleManager
from hitblow.session.models import Role, Session
from hitblow.session.presence import PresenceTracker
from hitblow.session.state_machine import GameStateMachine
from hitblow.session.sync import SessionSync, Subscription
from shared.logging import bind_session_context

if TYPE_CHECKING:
    import random
    from collections.abc import AsyncIterator, Callable

    from hitblow.session.context import SessionContext

logger = structlog.get_logger()


@dataclass(frozen=True)
class Standing:
    """A client's view of the match, derived from one snapshot."""

    role: Role
    my_results: list[GuessRecord]
    opponent_results: list[GuessRecord]
    outcome: MatchOutcome

    @property
    def won(self) -> bool:
        return self.outcome == (MatchOutcome.HOST_WINS if self.role is Role.HOST else MatchOutcome.GUEST_WINS)

    @property
    def lost(self) -> bool:
        return self.outcome == (MatchOutcome.GUEST_WINS if self.role is Role.HOST else MatchOutcome.HOST_WINS)

    @property
    def is_over(self) -> bool:
        return self.outcome != MatchOutcome.IN_PROGRESS


def compute_standing(session: Session, uid: str) -> Standing:
    """Score both guess histories against the opposing secrets."""
    role = session.role_of(uid)
    if role is None:
        raise PlayerNotFoundError(session.id, uid)

    host, guest = session.host, session.guest
    host_records = score_guesses(host.guesses, guest.secret if guest else None, session.config)
    guest_records = score_guesses(guest.guesses, host.secret, session.config) if guest else []
    outcome = determine_outcome(
        host_records,
        guest_records,
        session.config,
        host_slots=host.guess_slots,
        guest_slots=guest.guess_slots if guest else (),
    )

    if role is Role.HOST:
        return Standing(role=role, my_results=host_records, opponent_results=guest_records, outcome=outcome)
    return Standing(role=role, my_results=guest_records, opponent_results=host_records, outcome=outcome)


class MatchClient:
    """One player's handle on the session they host or joined."""

    def __init__(self, context: SessionContext, uid: str, rng: random.Random | None = None) -> None:
        self.uid = uid
        self.lifecycle = SessionLifecycleManager(context)
        self.state_machine = GameStateMachine(context)
        self.presence = PresenceTracker(context)
        self.sync = SessionSync(context)
        self._rng = rng
        self.session_id: str | None = None
        self.secret: str | None = None  # own secret, kept locally for display
        self._snapshot: Session | None = None
        self._changed = asyncio.Event()
        self._subscription: Subscription | None = None

    # --- Lobby ---

    async def create(self, config: GameConfig = DEFAULT_CONFIG) -> str:
        self.session_id = await self.lifecycle.create_session(config, self.uid)
        return self.session_id

    async def join(self, session_id: str) -> Session:
        session = await self.lifecycle.join_session(session_id, self.uid)
        self.session_id = session_id
        return session

    async def list_waiting(self, limit: int | None = None) -> list[Session]:
        return await self.lifecycle.list_waiting_sessions(limit)

    # --- Attachment ---

    @property
    def attached(self) -> bool:
        return self._subscription is not None

    @property
    def snapshot(self) -> Session | None:
        """Latest pushed snapshot; None before the first push or after deletion."""
        return self._snapshot

    @contextlib.asynccontextmanager
    async def attach(self, session_id: str | None = None) -> AsyncIterator[MatchClient]:
        """Follow a session: heartbeat and receive snapshots until exit."""
        if self.attached:
            raise RuntimeError(f"client {self.uid} is already attached to session {self.session_id}")
        session_id = session_id or self.session_id
        if session_id is None:
            raise RuntimeError("no session to attach to; create or join one first")
        self.session_id = session_id

        self._subscription = self.sync.subscribe(session_id, self._on_change)
        self.presence.start(session_id, self.uid)
        try:
            with bind_session_context(session_id=session_id, uid=self.uid):
                logger.info("attached to session")
                yield self
        finally:
            await self.presence.stop(session_id, self.uid)
            self._subscription.cancel()
            self._subscription = None
            logger.info("detached from session", session_id=session_id, uid=self.uid)

    async def wait_for(
        self,
        predicate: Callable[[Session | None], bool],
        timeout: float | None = None,
    ) -> Session | None:
        """Wait until a pushed snapshot satisfies ``predicate``. Requires attach."""
        if not self.attached:
            raise RuntimeError("wait_for requires an attached client")
        async with asyncio.timeout(timeout):
            while not predicate(self._snapshot):
                await self._changed.wait()
        return self._snapshot

    def _on_change(self, session: Session | None) -> None:
        self._snapshot = session
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    # --- Game actions ---

    async def set_secret(self, secret: str | None = None) -> str:
        """Commit ``secret``, or a freshly generated one. Return the secret."""
        session = await self._current()
        if secret is None:
            secret = generate_secret(session.config, self._rng)
        await self.state_machine.set_secret(session.id, self.uid, secret)
        self.secret = secret
        return secret

    async def toggle_ready(self) -> bool:
        """Flip readiness. Return the new value."""
        session = await self._current()
        me = session.player_for(self.uid)
        if me is None:
            raise PlayerNotFoundError(session.id, self.uid)
        ready = not me.is_ready
        await self.state_machine.set_ready(session.id, self.uid, ready)
        return ready

    async def start(self) -> None:
        await self.state_machine.start_game(self._require_session_id())

    async def guess(self, value: str) -> None:
        """Validate locally, refuse once the match is decided or the turn limit is used, then submit."""
        session = await self._current()
        reason = validate_guess(value, session.config)
        if reason is not None:
            raise InvalidGuessError(reason, value)
        me = session.player_for(self.uid)
        if me is None:
            raise PlayerNotFoundError(session.id, self.uid)
        standing = compute_standing(session, self.uid)
        if standing.is_over:
            raise GameOverError(session.id, standing.outcome.value)
        if is_turn_limit_reached(me.turn_count, session.config):
            raise TurnLimitReachedError(session.id, self.uid, me.turn_count)
        await self.state_machine.submit_guess(session.id, self.uid, value)

    async def standing(self) -> Standing:
        return compute_standing(await self._current(), self.uid)

    def is_opponent_online(self) -> bool:
        session = self._snapshot
        if session is None:
            return False
        opponent = session.opponent_of(self.uid)
        return opponent is not None and self.presence.is_online(opponent.last_active_at)

    async def leave(self) -> None:
        """Host tears the session down; a guest only gives up the seat."""
        session_id = self._require_session_id()
        session = await self.lifecycle.get_session(session_id)
        if session is not None:
            if session.role_of(self.uid) is Role.HOST:
                await self.lifecycle.delete_session(session_id)
            else:
                await self.lifecycle.leave_as_guest(session_id, self.uid)
        self.secret = None
        if not self.attached:
            self.session_id = None

    # --- Internal helpers ---

    def _require_session_id(self) -> str:
        if self.session_id is None:
            raise RuntimeError("client has no session; create or join one first")
        return self.session_id

    async def _current(self) -> Session:
        """Latest known state: the pushed snapshot when attached, else a read."""
        session_id = self._require_session_id()
        if self.attached and self._snapshot is not None:
            return self._snapshot
        session = await self.lifecycle.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session
