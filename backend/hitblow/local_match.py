"""Play a full match between two automated players on an in-memory store.

Both players drive the same session protocol a networked client would:
create, join, commit secrets, ready up, start, then take turns until the
match is decided. Each player only guesses codes consistent with the
results it has seen so far.

Usage:
    hitblow-local-match --digits 4 --max-turns 12 --seed 7
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from hitblow.logic.exceptions import InvalidConfigurationError
from hitblow.logic.rules import evaluate, generate_secret, validate_config
from hitblow.logic.settings import BlowRule, GameConfig
from hitblow.session.client import MatchClient
from hitblow.session.context import SessionContext
from hitblow.session.models import Role
from shared.dal import InMemoryDocumentStore
from shared.logging import setup_logging

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hitblow.logic.outcome import GuessRecord
    from hitblow.session.client import Standing

logger = structlog.get_logger()

HOST_UID = "local-host"
GUEST_UID = "local-guest"
MAX_CANDIDATE_DRAWS = 5000


def consistent_guess(history: Sequence[GuessRecord], config: GameConfig, rng: random.Random) -> str:
    """Draw a code that would have produced every result in ``history``.

    Gives up after ``MAX_CANDIDATE_DRAWS`` draws and returns the last one.
    """
    candidate = generate_secret(config, rng)
    for _ in range(MAX_CANDIDATE_DRAWS):
        if all(evaluate(candidate, record.guess, config.blow_rule) == record.result for record in history):
            return candidate
        candidate = generate_secret(config, rng)
    return candidate


async def play_match(context: SessionContext, config: GameConfig, rng: random.Random) -> Standing:
    """Run one match to completion and return the host's final standing.

    The host deletes the session on the way out.
    """
    host = MatchClient(context, HOST_UID, rng=random.Random(rng.random()))
    guest = MatchClient(context, GUEST_UID, rng=random.Random(rng.random()))
    players = {Role.HOST: host, Role.GUEST: guest}

    session_id = await host.create(config)
    await guest.join(session_id)

    async with host.attach(), guest.attach():
        for client in (host, guest):
            await client.set_secret()
            await client.toggle_ready()
        await host.start()

        standing = await host.standing()
        while not standing.is_over:
            session = host.snapshot
            if session is None:
                raise RuntimeError(f"session {session_id} disappeared mid-match")
            mover = players[session.current_turn]
            history = (await mover.standing()).my_results
            await mover.guess(consistent_guess(history, config, rng))
            standing = await host.standing()

        await host.state_machine.finish_game(session_id)
        logger.info("match decided", session_id=session_id, outcome=standing.outcome)

    await host.leave()
    return standing


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Play a Hit and Blow match between two automated players")
    parser.add_argument("--digits", type=int, default=4, help="code length (default: 4)")
    parser.add_argument("--allow-duplicate", action="store_true", help="allow repeated digits in codes")
    parser.add_argument(
        "--max-turns",
        type=int,
        default=12,
        help="guesses per player, 0 for unlimited (default: 12)",
    )
    parser.add_argument(
        "--blow-rule",
        choices=[rule.value for rule in BlowRule],
        default=BlowRule.CONTAINMENT.value,
        help="how blows are counted with repeated digits (default: containment)",
    )
    parser.add_argument("--seed", type=int, help="seed for secrets and guesses")
    parser.add_argument("--log-file", type=Path, help="also write logs to this file")
    args = parser.parse_args(argv)

    setup_logging(log_file=args.log_file)

    try:
        config = GameConfig(
            digits=args.digits,
            allow_duplicate=args.allow_duplicate,
            max_turns=args.max_turns or None,
            blow_rule=BlowRule(args.blow_rule),
        )
        validate_config(config)
    except (ValidationError, InvalidConfigurationError) as e:
        print(f"Invalid game configuration: {e}", file=sys.stderr)
        return 2

    context = SessionContext(store=InMemoryDocumentStore())
    standing = asyncio.run(play_match(context, config, random.Random(args.seed)))

    for label, records in (("host", standing.my_results), ("guest", standing.opponent_results)):
        for turn, record in enumerate(records, start=1):
            print(f"{label} {turn:>2}: {record.guess}  hit={record.hit} blow={record.blow}")
    print(f"outcome: {standing.outcome.value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
