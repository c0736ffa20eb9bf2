from datetime import datetime, timedelta, timezone

import pytest

from core.services.sync_status import SyncStatusTracker, format_distance_to_now


def test_initial_state(sync):
    state = sync.state
    assert state.status == "synced"
    assert state.last_sync_time is None
    assert state.is_online is True


def test_start_and_complete(sync, clock):
    seen = []
    sync.subscribe(lambda s: seen.append(s.status))
    expected_time = clock.now
    sync.start_sync()
    assert sync.state.is_syncing
    sync.complete_sync()
    assert sync.state.is_synced
    assert sync.state.last_sync_time == expected_time
    assert seen == ["syncing", "synced"]


def test_complete_sync_is_unconditional(sync):
    sync.mark_conflict()
    sync.complete_sync()
    assert sync.status == "synced"


def test_offline_and_conflict(sync):
    sync.mark_offline()
    assert sync.state.is_offline
    sync.mark_conflict()
    assert sync.state.is_conflict
    sync.set_status("synced")
    assert sync.status == "synced"


def test_going_offline_leaves_syncing_alone(sync):
    sync.start_sync()
    sync.set_online(False)
    assert sync.status == "syncing"
    assert sync.state.is_online is False


def test_reachability_change(sync):
    sync.handle_reachability_change(False)
    assert sync.status == "offline"
    assert sync.state.is_online is False
    sync.handle_reachability_change(True)
    assert sync.state.is_online is True
    assert sync.status == "offline"


def test_reachability_drop_keeps_syncing(sync):
    sync.start_sync()
    sync.handle_reachability_change(False)
    assert sync.status == "syncing"
    assert sync.state.is_online is False
    sync.mark_offline()
    assert sync.status == "offline"


def test_state_is_a_copy(sync):
    state = sync.state
    state.status = "conflict"
    assert sync.status == "synced"


def test_unsubscribe(sync):
    seen = []
    unsubscribe = sync.subscribe(lambda s: seen.append(s.status))
    unsubscribe()
    sync.start_sync()
    assert seen == []


def test_failing_listener_does_not_break_others():
    tracker = SyncStatusTracker()
    seen = []

    def boom(_state):
        raise RuntimeError("boom")

    tracker.subscribe(boom)
    tracker.subscribe(lambda s: seen.append(s.status))
    tracker.mark_offline()
    assert seen == ["offline"]


NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=10), "just now"),
        (timedelta(minutes=5), "5m ago"),
        (timedelta(hours=3, minutes=20), "3h ago"),
        (timedelta(days=2, hours=1), "2d ago"),
    ],
)
def test_format_distance_to_now(delta, expected):
    assert format_distance_to_now(NOW - delta, now=NOW) == expected
