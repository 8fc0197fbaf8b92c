"""Session record shared by the two clients of a match.

A Session is pure data: one immutable snapshot of the stored document.
Mutations go through the lifecycle manager and the state machine, which
write field paths to the store and receive new snapshots back.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hitblow.logic.settings import GameConfig

SESSIONS_COLLECTION = "sessions"


class Role(StrEnum):
    HOST = "host"
    GUEST = "guest"

    @property
    def opponent(self) -> Role:
        return Role.GUEST if self is Role.HOST else Role.HOST


class SessionStatus(StrEnum):
    WAITING = "waiting"
    PLAYING = "playing"
    FINISHED = "finished"


class Player(BaseModel):
    """One seat of a session.

    ``secret`` is write-once and ``guesses`` is append-only; both rules are
    enforced by conditional writes in the state machine. ``guess_slots[i]``
    is the session-wide submission index of ``guesses[i]``.
    """

    model_config = ConfigDict(frozen=True)

    uid: str
    role: Role
    is_ready: bool = False
    secret: str | None = None
    guesses: tuple[str, ...] = ()
    guess_slots: tuple[int, ...] = ()
    last_active_at: float

    @property
    def turn_count(self) -> int:
        return len(self.guesses)


class Session(BaseModel):
    """Snapshot of one match (a "room")."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: SessionStatus = SessionStatus.WAITING
    config: GameConfig = Field(default_factory=GameConfig)
    host: Player
    guest: Player | None = None
    current_turn: Role = Role.HOST
    guess_count: int = 0  # guesses accepted from both players
    created_at: float
    updated_at: float

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Session:
        return cls.model_validate(document)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @property
    def is_full(self) -> bool:
        return self.guest is not None

    def player(self, role: Role) -> Player | None:
        return self.host if role is Role.HOST else self.guest

    def role_of(self, uid: str) -> Role | None:
        """Resolve a uid to its role in this session, or None."""
        if self.host.uid == uid:
            return Role.HOST
        if self.guest is not None and self.guest.uid == uid:
            return Role.GUEST
        return None

    def player_for(self, uid: str) -> Player | None:
        role = self.role_of(uid)
        return self.player(role) if role is not None else None

    def opponent_of(self, uid: str) -> Player | None:
        role = self.role_of(uid)
        return self.player(role.opponent) if role is not None else None

    @property
    def all_ready(self) -> bool:
        return self.host.is_ready and self.guest is not None and self.guest.is_ready

    @property
    def secrets_set(self) -> bool:
        return bool(self.host.secret) and self.guest is not None and bool(self.guest.secret)


def new_player(uid: str, role: Role, now: float) -> Player:
    return Player(uid=uid, role=role, last_active_at=now)
