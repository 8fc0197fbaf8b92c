"""Tests for SessionRepository conditional writes."""

import pytest

from hitblow.session.exceptions import SessionConflictError, SessionFullError, SessionNotFoundError
from hitblow.session.repository import SessionRepository
from hitblow.tests.helpers import GUEST_UID


@pytest.fixture
def repository(context):
    return SessionRepository(context)


class TestUpdate:
    async def test_stamps_updated_at(self, repository, clock, waiting_session):
        clock.advance(3)
        await repository.update(waiting_session, {"host.is_ready": True})

        session = await repository.load(waiting_session)
        assert session.host.is_ready is True
        assert session.updated_at == clock.now
        assert session.created_at < clock.now

    async def test_missing_session(self, repository):
        with pytest.raises(SessionNotFoundError):
            await repository.update("missing", {"host.is_ready": True})


class TestCommit:
    async def test_returns_true_when_written(self, repository, waiting_session):
        wrote = await repository.commit(
            waiting_session,
            {"host.is_ready": True},
            expected={"host.is_ready": False},
            recheck=lambda _: None,
        )
        assert wrote is True

    async def test_recheck_error_replaces_conflict(self, repository, waiting_session):
        def recheck(session):
            raise SessionFullError(session.id)

        with pytest.raises(SessionFullError):
            await repository.commit(waiting_session, {"guest": None}, expected={"guest": None}, recheck=recheck)

        assert (await repository.load(waiting_session)).guest.uid == GUEST_UID

    async def test_recheck_may_accept_concurrent_result(self, repository, waiting_session):
        wrote = await repository.commit(
            waiting_session,
            {"host.is_ready": True},
            expected={"host.is_ready": True},
            recheck=lambda _: True,
        )
        assert wrote is False

    async def test_unexplained_loss_is_conflict(self, repository, waiting_session):
        with pytest.raises(SessionConflictError, match="host.is_ready"):
            await repository.commit(
                waiting_session,
                {"host.is_ready": True},
                expected={"host.is_ready": True},
                recheck=lambda _: None,
            )


class TestQueries:
    async def test_load_missing(self, repository):
        with pytest.raises(SessionNotFoundError):
            await repository.load("missing")

    async def test_subscribe_converts_documents(self, repository, waiting_session):
        received = []
        unsubscribe = repository.subscribe(waiting_session, received.append)
        await repository.delete(waiting_session)
        unsubscribe()

        assert received[0].id == waiting_session
        assert received[-1] is None
