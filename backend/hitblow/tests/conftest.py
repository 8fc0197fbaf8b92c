"""Session component fixtures built on the root store/clock fixtures."""

import pytest

from hitblow.logic.settings import GameConfig
from hitblow.session.lifecycle import SessionLifecycleManager
from hitblow.session.presence import PresenceTracker
from hitblow.session.state_machine import GameStateMachine
from hitblow.session.sync import SessionSync
from hitblow.tests.helpers import GUEST_SECRET, GUEST_UID, HOST_SECRET, HOST_UID


@pytest.fixture
def lifecycle(context):
    return SessionLifecycleManager(context)


@pytest.fixture
def machine(context):
    return GameStateMachine(context)


@pytest.fixture
async def presence(context):
    tracker = PresenceTracker(context)
    yield tracker
    await tracker.stop_all()


@pytest.fixture
def sync(context):
    return SessionSync(context)


@pytest.fixture
async def waiting_session(lifecycle):
    """Session id of a 4-digit, no-duplicate session with host and guest seated."""
    session_id = await lifecycle.create_session(GameConfig(digits=4, allow_duplicate=False), HOST_UID)
    await lifecycle.join_session(session_id, GUEST_UID)
    return session_id


@pytest.fixture
async def playing_session(waiting_session, machine):
    """Session id of a started game: secrets committed, both ready, host to move."""
    await machine.set_secret(waiting_session, HOST_UID, HOST_SECRET)
    await machine.set_secret(waiting_session, GUEST_UID, GUEST_SECRET)
    await machine.set_ready(waiting_session, HOST_UID, True)
    await machine.set_ready(waiting_session, GUEST_UID, True)
    await machine.start_game(waiting_session)
    return waiting_session
