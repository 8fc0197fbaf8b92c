"""Explicit context shared by the session components of one client."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from hitblow.session.settings import SessionSettings

if TYPE_CHECKING:
    from collections.abc import Callable

    from shared.dal import DocumentStore


@dataclass(frozen=True)
class SessionContext:
    """Store handle, settings and clock passed to every session component.

    The clock returns epoch seconds and is injectable for tests.
    """

    store: DocumentStore
    settings: SessionSettings = field(default_factory=SessionSettings)
    clock: Callable[[], float] = time.time

    def now(self) -> float:
        return self.clock()
