"""Errors raised by session lifecycle and state machine operations.

Each operation either commits its write or raises one of these with the
stored record left unchanged. Store transport failures propagate as
``shared.dal.StoreError``.
"""


class SessionError(Exception):
    """Base exception for session operations."""

    def __init__(self, session_id: str, message: str) -> None:
        self.session_id = session_id
        super().__init__(f"session {session_id}: {message}")


class SessionNotFoundError(SessionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, "not found")


class SessionFullError(SessionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, "already has a guest")


class SessionNotJoinableError(SessionError):
    """Session is past the waiting state, or the joiner already hosts it."""


class PlayersNotReadyError(SessionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, "both players must be present and ready")


class SecretsMissingError(SessionError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, "both players must set a secret")


class SecretAlreadySetError(SessionError):
    def __init__(self, session_id: str, uid: str) -> None:
        self.uid = uid
        super().__init__(session_id, f"player {uid} already committed a secret")


class PlayerNotFoundError(SessionError):
    def __init__(self, session_id: str, uid: str) -> None:
        self.uid = uid
        super().__init__(session_id, f"player {uid} is not in this session")


class NotYourTurnError(SessionError):
    def __init__(self, session_id: str, uid: str) -> None:
        self.uid = uid
        super().__init__(session_id, f"it is not player {uid}'s turn")


class TurnLimitReachedError(SessionError):
    def __init__(self, session_id: str, uid: str, max_turns: int) -> None:
        self.uid = uid
        self.max_turns = max_turns
        super().__init__(session_id, f"player {uid} has used all {max_turns} turns")


class GameOverError(SessionError):
    def __init__(self, session_id: str, outcome: str) -> None:
        self.outcome = outcome
        super().__init__(session_id, f"match is already decided ({outcome})")


class GameNotInProgressError(SessionError):
    def __init__(self, session_id: str, status: str) -> None:
        self.status = status
        super().__init__(session_id, f"game is not in progress (status={status})")


class GameAlreadyStartedError(SessionError):
    def __init__(self, session_id: str, status: str) -> None:
        self.status = status
        super().__init__(session_id, f"only allowed before the game starts (status={status})")


class SessionConflictError(SessionError):
    """A conditional write lost a race in a way no other error describes."""
