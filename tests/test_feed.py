"""
Tests for LiveIncidentFeed: snapshot replacement, memoized stats and listeners.
"""
import asyncio
from datetime import timedelta, timezone
from unittest.mock import patch

import pytest

from incidents.analytics import compute_stats
from incidents.feed import LiveIncidentFeed
from incidents.types import IncidentStatus
from services.incident_store import InMemoryIncidentStore
from conftest import NOW, make_record


@pytest.fixture
def feed(store):
    live = LiveIncidentFeed(store, tz=timezone.utc)
    live.start()
    yield live
    live.stop()


class TestSnapshots:

    def test_start_receives_initial_snapshot(self):
        store = InMemoryIncidentStore(seed=[make_record("a"), make_record("b")])
        feed = LiveIncidentFeed(store, tz=timezone.utc)

        assert feed.connected is False
        feed.start()

        assert feed.connected is True
        assert feed.version == 1
        assert {i.id for i in feed.incidents()} == {"a", "b"}
        feed.stop()
        assert feed.connected is False

    @pytest.mark.asyncio
    async def test_every_change_replaces_snapshot(self, feed, store):
        incident_id = await store.insert(make_record(None))
        await store.update_status(incident_id, IncidentStatus.RESOLVED, NOW)

        version, incidents = feed.snapshot()
        assert version == 3
        assert len(incidents) == 1
        assert feed.get(incident_id).status == IncidentStatus.RESOLVED
        assert feed.get("missing") is None

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, feed, store):
        feed.stop()

        await store.insert(make_record(None))

        assert feed.incidents() == []


class TestStats:

    @pytest.mark.asyncio
    async def test_stats_memoized_per_version(self, feed, store):
        await store.insert(make_record(None))

        with patch("incidents.feed.compute_stats", wraps=compute_stats) as spy:
            first = feed.stats(NOW)
            second = feed.stats(NOW + timedelta(minutes=5))
            assert spy.call_count == 1
            assert first is second

            feed.stats(NOW, lang="en")
            assert spy.call_count == 2

            await store.insert(make_record(None))
            third = feed.stats(NOW)
            assert spy.call_count == 3
            assert third.total == 2

    def test_stats_recomputed_on_new_day(self, feed):
        feed._on_snapshot([make_record("a")])

        today = feed.stats(NOW)
        tomorrow = feed.stats(NOW + timedelta(days=1))

        assert today.daily_counts[-1].count == 1
        assert tomorrow.daily_counts[-1].count == 0
        assert tomorrow.daily_counts[-2].count == 1

    def test_empty_snapshot_has_no_stats(self, feed):
        assert feed.stats(NOW) is None


class TestListeners:

    @pytest.mark.asyncio
    async def test_listener_woken_on_snapshot(self, feed, store):
        listener_id, queue = feed.add_listener()

        await store.insert(make_record(None))
        version = await asyncio.wait_for(queue.get(), timeout=1)

        assert version == feed.version
        feed.remove_listener(listener_id)

    @pytest.mark.asyncio
    async def test_snapshot_from_another_thread(self, feed):
        _, queue = feed.add_listener()

        await asyncio.to_thread(feed._on_snapshot, [make_record("t")])
        version = await asyncio.wait_for(queue.get(), timeout=1)

        assert version == feed.version
        assert feed.get("t") is not None

    @pytest.mark.asyncio
    async def test_removed_listener_not_notified(self, feed, store):
        listener_id, queue = feed.add_listener()
        feed.remove_listener(listener_id)

        await store.insert(make_record(None))
        await asyncio.sleep(0)

        assert queue.empty()
