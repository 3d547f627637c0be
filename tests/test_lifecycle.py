from datetime import date

import pytest

from conftest import NOW, STAFF, STORE_S1, STORE_S2, VOL_V1, VOL_V2, fixed_clock
from foodlink.core.errors import (
    BackendFailure,
    NotAuthenticated,
    NotFound,
    OperationInProgress,
    TransitionRejected,
    ValidationFailure,
)
from foodlink.schemas import ScheduleCreate, ScheduleEdit
from foodlink.services.lifecycle import InFlightGuard, ScheduleLifecycle, format_time_window
from foodlink.services.notifications import NotificationEmitter

pytestmark = pytest.mark.anyio


def make_lifecycle(repo, guard=None):
    return ScheduleLifecycle(repo, NotificationEmitter(repo, clock=fixed_clock), guard=guard, clock=fixed_clock)


async def _create(lc, volunteer_id="V1", day=date(2026, 10, 20)):
    body = ScheduleCreate(store_id="S1", volunteer_id=volunteer_id, pickup_date=day,
                          start_time="09:00", end_time="11:30")
    return (await lc.create_schedule(STAFF, body)).schedule


async def test_create_denormalizes_names(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    stored = await seeded.get_schedule(s.id)
    assert stored["storeName"] == "Green Grocer"
    assert stored["volunteerName"] == "Alice Moss"
    assert stored["status"] == "scheduled"
    assert stored["timeWindow"] == "09:00 AM - 11:30 AM"
    assert stored["createdBy"] == "ADMIN"
    assert "classification" not in stored


async def test_create_requires_window_and_staff(seeded):
    lc = make_lifecycle(seeded)
    with pytest.raises(ValidationFailure):
        await lc.create_schedule(STAFF, ScheduleCreate(store_id="S1", pickup_date=date(2026, 10, 20)))
    with pytest.raises(NotAuthenticated) as exc:
        await lc.create_schedule(VOL_V1, ScheduleCreate(store_id="S1", pickup_date=date(2026, 10, 20),
                                                        time_window="morning"))
    assert exc.value.status_code == 403
    with pytest.raises(NotFound):
        await lc.create_schedule(STAFF, ScheduleCreate(store_id="NOPE", pickup_date=date(2026, 10, 20),
                                                       time_window="morning"))


async def test_create_flags_unavailable_day(seeded):
    await seeded.update_store("S1", {"unavailableDates": [NOW.replace(day=20, hour=0)]})
    lc = make_lifecycle(seeded)
    out = await lc.create_schedule(STAFF, ScheduleCreate(store_id="S1", pickup_date=date(2026, 10, 20),
                                                         time_window="9-11"))
    assert out.store_unavailable is True


async def test_pickup_then_delivery(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)

    out = await lc.confirm_pickup(VOL_V1, s.id)
    assert out.schedule.pickup_confirmed is True
    assert out.schedule.status == "scheduled"
    assert out.notification_id is not None

    out = await lc.confirm_delivery(VOL_V1, s.id)
    assert out.schedule.delivery_confirmed is True
    assert out.schedule.status == "completed"
    assert out.schedule.delivery_confirmed_at == NOW

    types = [n["type"] for n in seeded.notifications.values()]
    assert sorted(types) == ["delivery_confirmed", "pickup_confirmed"]


async def test_delivery_without_pickup_changes_nothing(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    before = await seeded.get_schedule(s.id)

    with pytest.raises(TransitionRejected):
        await lc.confirm_delivery(VOL_V1, s.id)

    assert await seeded.get_schedule(s.id) == before
    assert seeded.notifications == {}


async def test_only_assigned_volunteer_confirms(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    with pytest.raises(NotAuthenticated):
        await lc.confirm_pickup(VOL_V2, s.id)
    with pytest.raises(NotAuthenticated):
        await lc.confirm_pickup(STORE_S1, s.id)


async def test_readiness_notifies_only_with_volunteer(seeded):
    lc = make_lifecycle(seeded)
    assigned = await _create(lc)
    unassigned = await _create(lc, volunteer_id=None)

    out = await lc.confirm_readiness(STORE_S1, assigned.id)
    assert out.schedule.status == "ready"
    assert out.notification_id is not None
    note = seeded.notifications[out.notification_id]
    assert note["type"] == "readiness_confirmed"
    assert note["message"] == "Store Green Grocer has confirmed that the donation will be ready."

    out = await lc.confirm_readiness(STORE_S1, unassigned.id)
    assert out.schedule.status == "ready"
    assert out.notification_id is None
    assert len(seeded.notifications) == 1


async def test_readiness_rules(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    with pytest.raises(NotAuthenticated):
        await lc.confirm_readiness(STORE_S2, s.id)
    await lc.confirm_readiness(STORE_S1, s.id)
    with pytest.raises(TransitionRejected):
        await lc.confirm_readiness(STORE_S1, s.id)


async def test_inflight_guard_blocks_same_surface(seeded):
    guard = InFlightGuard()
    lc = make_lifecycle(seeded, guard=guard)
    s = await _create(lc)
    async with guard.hold("V1", "confirm_pickup", s.id):
        with pytest.raises(OperationInProgress):
            await lc.confirm_pickup(VOL_V1, s.id)
    # released afterwards
    out = await lc.confirm_pickup(VOL_V1, s.id)
    assert out.schedule.pickup_confirmed


async def test_edit_keeps_confirmation_flags(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    await lc.confirm_pickup(VOL_V1, s.id)

    edited = await lc.edit_schedule(STAFF, s.id, ScheduleEdit(volunteer_id="V2", pickup_date=date(2026, 10, 25)))
    assert edited.volunteer_id == "V2"
    assert edited.volunteer_name == "Bob Reyes"
    assert edited.pickup_day == date(2026, 10, 25)
    assert edited.pickup_confirmed is True


async def test_edit_time_rebuilds_window_and_unassigns(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    edited = await lc.edit_schedule(STAFF, s.id, ScheduleEdit(end_time="14:00", volunteer_id=None))
    assert edited.time_window == "09:00 AM - 02:00 PM"
    assert edited.volunteer_id is None
    assert edited.volunteer_name == ""


async def test_edit_moves_schedule_to_another_store(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)

    edited = await lc.edit_schedule(STAFF, s.id, ScheduleEdit(store_id="S2"))
    assert (edited.store_id, edited.store_name) == ("S2", "Corner Bakery")

    with pytest.raises(NotFound):
        await lc.edit_schedule(STAFF, s.id, ScheduleEdit(store_id="NOPE"))
    assert (await seeded.get_schedule(s.id))["storeId"] == "S2"


async def test_cancel_and_delete(seeded):
    lc = make_lifecycle(seeded)
    s = await _create(lc)
    cancelled = await lc.cancel_schedule(STAFF, s.id)
    assert cancelled.status == "cancelled"
    assert cancelled.classification == "cancelled"

    await lc.delete_schedule(STAFF, s.id)
    assert await seeded.get_schedule(s.id) is None
    with pytest.raises(NotFound):
        await lc.delete_schedule(STAFF, s.id)
    with pytest.raises(NotFound):
        await lc.confirm_pickup(VOL_V1, s.id)


async def test_notification_failure_does_not_undo_transition(seeded):
    async def broken(doc):
        raise BackendFailure("down")

    lc = make_lifecycle(seeded)
    s = await _create(lc)
    seeded.insert_notification = broken

    out = await lc.confirm_pickup(VOL_V1, s.id)
    assert out.notification_id is None
    assert (await seeded.get_schedule(s.id))["pickupConfirmed"] is True


def test_format_time_window():
    assert format_time_window("00:05", "23:59") == "12:05 AM - 11:59 PM"
