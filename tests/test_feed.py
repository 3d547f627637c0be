from datetime import datetime, timezone

import pytest

from conftest import fixed_clock
from foodlink.services.feed import AssignmentFeed

pytestmark = pytest.mark.anyio


def at(day, hour=0):
    return datetime(2026, 10, day, hour, tzinfo=timezone.utc)


@pytest.fixture
async def feed_repo(seeded):
    rows = [
        ("p1", "S1", "V1", at(14), "completed"),
        ("p2", "S1", "V1", at(16), "scheduled"),   # today counts as upcoming
        ("p3", "S1", "V2", at(18), "ready"),
        ("p4", "S1", "V1", None, "scheduled"),
        ("p5", "S2", "V1", at(17), "Cancelled"),
        ("p6", "S1", "V1", at(20), "scheduled"),
    ]
    for sid, store, vol, when, status in rows:
        await seeded.insert_schedule({"_id": sid, "storeId": store, "volunteerId": vol,
                                      "storeName": "Green Grocer" if store == "S1" else "Corner Bakery",
                                      "volunteerName": "Alice Moss" if vol == "V1" else "Bob Reyes",
                                      "pickupDate": when, "status": status})
    return seeded


async def test_volunteer_upcoming(feed_repo):
    feed = AssignmentFeed(feed_repo, clock=fixed_clock)
    got = await feed.snapshot(volunteer_id="V1")
    assert [s.id for s in got] == ["p2", "p5", "p6"]


async def test_store_history_puts_undated_last(feed_repo):
    feed = AssignmentFeed(feed_repo, clock=fixed_clock)
    got = await feed.snapshot(store_id="S1", view="history")
    assert [s.id for s in got] == ["p6", "p3", "p2", "p1", "p4"]


async def test_snapshot_needs_one_owner(feed_repo):
    feed = AssignmentFeed(feed_repo, clock=fixed_clock)
    with pytest.raises(ValueError):
        await feed.snapshot()
    with pytest.raises(ValueError):
        await feed.snapshot(store_id="S1", volunteer_id="V1")


async def test_subscribe_pushes_after_change(feed_repo):
    feed = AssignmentFeed(feed_repo, clock=fixed_clock)
    updates = feed.subscribe(volunteer_id="V2")
    first = await updates.__anext__()
    assert [s.id for s in first] == ["p3"]

    await feed_repo.update_schedule("p6", {"volunteerId": "V2"})
    second = await updates.__anext__()
    assert [s.id for s in second] == ["p3", "p6"]

    await updates.aclose()
    assert feed_repo._watchers == set()


async def test_tracking_counts_and_filters(feed_repo):
    feed = AssignmentFeed(feed_repo, clock=fixed_clock)
    out = await feed.tracking()
    assert (out.pending_count, out.completed_count, out.cancelled_count) == (4, 1, 1)
    assert out.store_names == ["Corner Bakery", "Green Grocer"]
    assert out.volunteer_names == ["Alice Moss", "Bob Reyes"]
    assert len(out.schedules) == 6

    only = await feed.tracking(store_name="Corner Bakery")
    assert [s.id for s in only.schedules] == ["p5"]
    # counts always cover every schedule
    assert only.pending_count == 4

    both = await feed.tracking(store_name="Green Grocer", volunteer_name="Bob Reyes")
    assert [s.id for s in both.schedules] == ["p3"]


async def test_legacy_schedule_without_store_id(seeded):
    await seeded.insert_schedule({"_id": "old", "storeId": None, "storeName": None,
                                  "volunteerId": "V1", "pickupDate": at(18), "status": "Delivered"})
    feed = AssignmentFeed(seeded, clock=fixed_clock)

    got = await feed.snapshot(volunteer_id="V1")

    assert [(s.id, s.store_id, s.status) for s in got] == [("old", "", "scheduled")]
