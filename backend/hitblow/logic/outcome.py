"""
Derive match results from guess histories.

The session record never stores who won. Every client scores both guess
sequences against the opposing secrets and reaches the same verdict from
the same snapshot.

Guess ordering: each stored guess carries its session-wide submission slot.
If both players clear, the clearing guess with the earlier slot wins. Without
stored slots the host is assumed to have moved first with turns alternating,
so the host's n-th guess is slot 2n and the guest's n-th guess is slot 2n + 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from hitblow.logic.rules import GuessResult, evaluate, is_game_clear, is_turn_limit_reached

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hitblow.logic.settings import GameConfig


class MatchOutcome(StrEnum):
    IN_PROGRESS = "in_progress"
    HOST_WINS = "host_wins"
    GUEST_WINS = "guest_wins"
    DRAW = "draw"


@dataclass(frozen=True)
class GuessRecord:
    """One scored guess, as shown in a player's history."""

    guess: str
    hit: int
    blow: int

    @property
    def result(self) -> GuessResult:
        return GuessResult(hit=self.hit, blow=self.blow)


def score_guesses(guesses: Sequence[str], secret: str | None, config: GameConfig) -> list[GuessRecord]:
    """Score each guess against the opponent's secret.

    Returns an empty history while the secret is unknown.
    """
    if not secret:
        return []
    records = []
    for guess in guesses:
        result = evaluate(secret, guess, config.blow_rule)
        records.append(GuessRecord(guess=guess, hit=result.hit, blow=result.blow))
    return records


def first_clear_index(records: Sequence[GuessRecord], config: GameConfig) -> int | None:
    """Return the index of the first clearing guess, or None."""
    for index, record in enumerate(records):
        if is_game_clear(record.result, config):
            return index
    return None


def _clear_slot(
    records: Sequence[GuessRecord],
    slots: Sequence[int],
    config: GameConfig,
    offset: int,
) -> int | None:
    index = first_clear_index(records, config)
    if index is None:
        return None
    if index < len(slots):
        return slots[index]
    return 2 * index + offset


def determine_outcome(
    host_records: Sequence[GuessRecord],
    guest_records: Sequence[GuessRecord],
    config: GameConfig,
    host_slots: Sequence[int] = (),
    guest_slots: Sequence[int] = (),
) -> MatchOutcome:
    """Decide the match from both scored histories.

    ``host_slots`` and ``guest_slots`` give the submission slot of each
    guess. When omitted, strict alternation from the host is assumed.
    """
    host_slot = _clear_slot(host_records, host_slots, config, 0)
    guest_slot = _clear_slot(guest_records, guest_slots, config, 1)

    if host_slot is not None or guest_slot is not None:
        if guest_slot is None or (host_slot is not None and host_slot < guest_slot):
            return MatchOutcome.HOST_WINS
        return MatchOutcome.GUEST_WINS

    if is_turn_limit_reached(len(host_records), config) and is_turn_limit_reached(len(guest_records), config):
        return MatchOutcome.DRAW
    return MatchOutcome.IN_PROGRESS
