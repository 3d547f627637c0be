from datetime import datetime, timezone

import pytest

from foodlink.core import states
from foodlink.core.errors import TransitionRejected
from foodlink.core.states import ScheduleState

T1 = datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc)
T2 = datetime(2026, 10, 16, 11, 0, tzinfo=timezone.utc)


def test_pickup_then_delivery_completes():
    s = ScheduleState()
    s = states.confirm_pickup(s, T1)
    assert s.pickup_confirmed and s.pickup_confirmed_at == T1
    assert s.status == "scheduled"
    assert s.classification == "pending"

    s = states.confirm_delivery(s, T2)
    assert s.delivery_confirmed and s.delivery_confirmed_at == T2
    assert s.status == "completed"
    assert s.classification == "completed"


def test_delivery_requires_pickup():
    s = ScheduleState()
    with pytest.raises(TransitionRejected):
        states.confirm_delivery(s, T1)
    assert s == ScheduleState()


def test_readiness_rejected_when_already_ready():
    s = states.confirm_readiness(ScheduleState(), T1)
    assert s.status == "ready" and s.ready_confirmed_at == T1
    with pytest.raises(TransitionRejected):
        states.confirm_readiness(s, T2)


def test_pickup_keeps_ready_status():
    s = states.confirm_readiness(ScheduleState(), T1)
    s = states.confirm_pickup(s, T2)
    assert s.status == "ready"
    assert s.pickup_confirmed


def test_cancel_from_any_state_and_completed_wins_classification():
    delivered = states.confirm_delivery(states.confirm_pickup(ScheduleState(), T1), T2)
    cancelled = states.cancel(delivered)
    assert cancelled.status == "cancelled"
    # a delivered schedule still counts as completed
    assert cancelled.classification == "completed"
    assert states.cancel(ScheduleState()).classification == "cancelled"


def test_from_doc_normalizes_legacy_values():
    s = ScheduleState.from_doc({"status": " Completed ", "pickupConfirmed": None})
    assert s.phase == "completed" and s.pickup_confirmed is False
    assert ScheduleState.from_doc({"status": "weird"}).phase == "scheduled"
    assert ScheduleState.from_doc({}).phase == "scheduled"


def test_changed_fields_only_reports_differences():
    before = ScheduleState()
    after = states.confirm_pickup(before, T1)
    assert after.changed_fields(before) == {"pickupConfirmed": True, "pickupConfirmedAt": T1}


@pytest.mark.parametrize("action,role,ok", [
    ("confirm_readiness", "store", True),
    ("confirm_readiness", "volunteer", False),
    ("confirm_pickup", "volunteer", True),
    ("confirm_delivery", "staff", False),
    ("create", "staff", True),
    ("delete", "store", False),
    ("unknown", "staff", False),
])
def test_action_roles(action, role, ok):
    assert states.can_perform(action, role) is ok
