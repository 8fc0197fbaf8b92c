"""Typed domain exceptions for game rule violations.

Rule violations use subclasses of GameRuleError rather than raw ValueError,
so the session layer and clients can catch them at one boundary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hitblow.logic.settings import ValidationReason


class GameRuleError(Exception):
    """Base exception for game rule violations."""


class InvalidConfigurationError(GameRuleError):
    """Game configuration cannot be played (e.g. 11 unique digits)."""


class InvalidGuessError(GameRuleError):
    """A guess or secret does not match the session's digit format.

    Attributes:
        reason: The first validation check the value failed.

    """

    def __init__(self, reason: ValidationReason, value: str = "") -> None:
        self.reason = reason
        self.value = value
        super().__init__(f"invalid guess {value!r}: {reason.value}")
