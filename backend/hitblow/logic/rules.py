"""
Hit and Blow rules: secret generation, guess validation and evaluation.

Everything here is pure and synchronous. Session code calls these helpers
to validate what it commits; clients call them to score the synchronized
record locally.
"""

from __future__ import annotations

import random
from collections import Counter
from typing import NamedTuple

from hitblow.logic.exceptions import InvalidConfigurationError
from hitblow.logic.settings import DIGIT_ALPHABET, BlowRule, GameConfig, ValidationReason

MAX_UNIQUE_DIGITS = len(DIGIT_ALPHABET)

_system_rng = random.SystemRandom()


class GuessResult(NamedTuple):
    hit: int
    blow: int


def validate_config(config: GameConfig) -> None:
    """Raise InvalidConfigurationError if no secret can satisfy the config."""
    if not config.allow_duplicate and config.digits > MAX_UNIQUE_DIGITS:
        raise InvalidConfigurationError(
            f"digits must be at most {MAX_UNIQUE_DIGITS} without duplicates, got {config.digits}",
        )


def generate_secret(config: GameConfig, rng: random.Random | None = None) -> str:
    """Generate a random secret of ``config.digits`` digits.

    With duplicates allowed every position is drawn independently from the
    full alphabet. Otherwise digits are drawn without replacement, which
    yields a uniformly random ordered selection of distinct digits.
    """
    validate_config(config)
    rng = rng or _system_rng
    if config.allow_duplicate:
        return "".join(rng.choice(DIGIT_ALPHABET) for _ in range(config.digits))
    return "".join(rng.sample(DIGIT_ALPHABET, config.digits))


def validate_guess(value: str, config: GameConfig) -> ValidationReason | None:
    """Return the first reason ``value`` is not a valid guess, or None.

    Checks run in order: length, digits only, duplicates (when disallowed).
    Secrets are validated with the same rules.
    """
    if len(value) != config.digits:
        return ValidationReason.WRONG_LENGTH
    if any(ch not in DIGIT_ALPHABET for ch in value):
        return ValidationReason.NON_DIGIT_CHARACTER
    if not config.allow_duplicate and len(set(value)) < config.digits:
        return ValidationReason.DUPLICATE_NOT_ALLOWED
    return None


def evaluate(secret: str, guess: str, rule: BlowRule = BlowRule.CONTAINMENT) -> GuessResult:
    """Count hits and blows of ``guess`` against ``secret`` (equal lengths)."""
    hit = sum(1 for s, g in zip(secret, guess, strict=True) if s == g)

    if rule == BlowRule.STRICT:
        unmatched = [(s, g) for s, g in zip(secret, guess, strict=True) if s != g]
        secret_left = Counter(s for s, _ in unmatched)
        guess_left = Counter(g for _, g in unmatched)
        blow = sum(min(count, secret_left[digit]) for digit, count in guess_left.items())
        return GuessResult(hit=hit, blow=blow)

    blow = sum(1 for s, g in zip(secret, guess, strict=True) if s != g and g in secret)
    return GuessResult(hit=hit, blow=blow)


def is_game_clear(result: GuessResult, config: GameConfig) -> bool:
    return result.hit == config.digits


def is_turn_limit_reached(turn_count: int, config: GameConfig) -> bool:
    """Check whether a player with ``turn_count`` guesses may not guess again."""
    return config.max_turns is not None and turn_count >= config.max_turns
