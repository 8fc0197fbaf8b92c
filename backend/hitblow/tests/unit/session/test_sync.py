"""Tests for session snapshot subscriptions."""

import asyncio
import logging

import pytest

from hitblow.session.models import SESSIONS_COLLECTION, SessionStatus
from hitblow.tests.helpers import GUEST_UID, HOST_UID


class TestSubscribe:
    async def test_delivers_current_snapshot_immediately(self, sync, waiting_session):
        received = []
        subscription = sync.subscribe(waiting_session, received.append)

        assert len(received) == 1
        assert received[0].id == waiting_session
        assert received[0].guest.uid == GUEST_UID
        subscription.cancel()

    async def test_delivers_every_committed_change_in_order(self, sync, machine, waiting_session):
        received = []
        subscription = sync.subscribe(waiting_session, received.append)

        await machine.set_ready(waiting_session, HOST_UID, True)
        await machine.set_ready(waiting_session, GUEST_UID, True)

        assert [(s.host.is_ready, s.guest.is_ready) for s in received] == [
            (False, False),
            (True, False),
            (True, True),
        ]
        subscription.cancel()

    async def test_deletion_delivered_as_none(self, sync, lifecycle, waiting_session):
        received = []
        subscription = sync.subscribe(waiting_session, received.append)

        await lifecycle.delete_session(waiting_session)

        assert received[-1] is None
        subscription.cancel()

    async def test_missing_session_delivers_none(self, sync):
        received = []
        subscription = sync.subscribe("missing", received.append)
        assert received == [None]
        subscription.cancel()

    async def test_cancel_stops_delivery_and_releases_listener(self, sync, store, machine, waiting_session):
        received = []
        subscription = sync.subscribe(waiting_session, received.append)
        assert store.listener_count(SESSIONS_COLLECTION, waiting_session) == 1

        subscription.cancel()
        await machine.set_ready(waiting_session, HOST_UID, True)

        assert len(received) == 1
        assert subscription.active is False
        assert store.listener_count(SESSIONS_COLLECTION, waiting_session) == 0

    async def test_double_cancel_warns(self, sync, waiting_session, caplog):
        subscription = sync.subscribe(waiting_session, lambda _: None)
        subscription.cancel()

        with caplog.at_level(logging.WARNING):
            subscription.cancel()

        assert "subscription already cancelled" in caplog.text

    async def test_failing_listener_does_not_block_others(self, sync, machine, waiting_session):
        received = []

        def broken(_session):
            raise RuntimeError("listener bug")

        first = sync.subscribe(waiting_session, broken)
        second = sync.subscribe(waiting_session, received.append)
        await machine.set_ready(waiting_session, HOST_UID, True)

        assert received[-1].host.is_ready is True
        first.cancel()
        second.cancel()


class TestWatch:
    async def test_stream_yields_current_then_changes(self, sync, machine, waiting_session):
        async with sync.watch(waiting_session) as stream:
            first = await anext(stream)
            assert first.status is SessionStatus.WAITING

            await machine.set_ready(waiting_session, HOST_UID, True)
            second = await anext(stream)
            assert second.host.is_ready is True

    async def test_slow_consumer_sees_latest_only(self, sync, machine, waiting_session):
        async with sync.watch(waiting_session) as stream:
            await machine.set_ready(waiting_session, HOST_UID, True)
            await machine.set_ready(waiting_session, GUEST_UID, True)

            latest = await anext(stream)
            assert latest.host.is_ready is True
            assert latest.guest.is_ready is True

    async def test_stream_ends_after_deletion(self, sync, lifecycle, waiting_session):
        async with sync.watch(waiting_session) as stream:
            await anext(stream)
            await lifecycle.delete_session(waiting_session)

            snapshots = [snapshot async for snapshot in stream]

        assert snapshots == [None]

    async def test_exit_releases_listener(self, sync, store, waiting_session):
        async with sync.watch(waiting_session):
            assert store.listener_count(SESSIONS_COLLECTION, waiting_session) == 1
        assert store.listener_count(SESSIONS_COLLECTION, waiting_session) == 0

    async def test_exit_releases_listener_on_error(self, sync, store, waiting_session):
        with pytest.raises(ValueError, match="boom"):
            async with sync.watch(waiting_session):
                raise ValueError("boom")
        assert store.listener_count(SESSIONS_COLLECTION, waiting_session) == 0

    async def test_consumer_waiting_on_closed_stream_stops(self, sync, waiting_session):
        async with sync.watch(waiting_session) as stream:
            await anext(stream)
            waiter = asyncio.ensure_future(anext(stream, "done"))
            await asyncio.sleep(0)
            stream.close()
            assert await waiter == "done"
