"""Game configuration for Hit and Blow matches."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

DIGIT_ALPHABET = "0123456789"


class BlowRule(StrEnum):
    """How blows are counted when digits repeat."""

    # Any non-hit digit found anywhere in the secret is a blow. Over-counts
    # with repeated digits.
    CONTAINMENT = "containment"
    # Standard Mastermind: blows capped per digit by the unmatched counts.
    STRICT = "strict"


class ValidationReason(StrEnum):
    """Why a guess or secret was rejected, in check order."""

    WRONG_LENGTH = "wrong_length"
    NON_DIGIT_CHARACTER = "non_digit_character"
    DUPLICATE_NOT_ALLOWED = "duplicate_not_allowed"


class GameConfig(BaseModel):
    """
    Rules for one match, fixed when the session is created.

    Impossible combinations (more than 10 unique digits) are accepted here and
    rejected by ``rules.validate_config`` so that callers get a rule error
    instead of a pydantic validation error.
    """

    model_config = ConfigDict(frozen=True)

    digits: int = Field(default=4, ge=1)
    allow_duplicate: bool = False
    max_turns: int | None = Field(default=None, ge=1)  # None = unlimited
    blow_rule: BlowRule = BlowRule.CONTAINMENT


DEFAULT_CONFIG = GameConfig()
