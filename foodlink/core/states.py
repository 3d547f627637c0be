"""Schedule lifecycle state.

A schedule document carries a ``status`` string plus independent
pickup/delivery confirmation flags. Here they are held together as one frozen
``ScheduleState``; the transition functions below are the only way to derive a
new state, and the repository only ever persists ``state.to_fields()``.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from foodlink.core.errors import TransitionRejected

Phase = Literal["scheduled", "ready", "completed", "cancelled"]
Classification = Literal["pending", "completed", "cancelled"]

PHASES = ["scheduled", "ready", "completed", "cancelled"]

ACTIONS = {
    "confirm_readiness": {"roles": ["store"]},
    "confirm_pickup":    {"roles": ["volunteer"]},
    "confirm_delivery":  {"roles": ["volunteer"]},
    "create":            {"roles": ["staff"]},
    "edit":              {"roles": ["staff"]},
    "cancel":            {"roles": ["staff"]},
    "delete":            {"roles": ["staff"]},
}


def can_perform(action: str, role: str) -> bool:
    rule = ACTIONS.get(action)
    if not rule:
        return False
    return role in rule["roles"]


def normalize_status(raw) -> Phase:
    value = str(raw or "").strip().lower()
    return value if value in PHASES else "scheduled"


class ScheduleState(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Phase = "scheduled"
    pickup_confirmed: bool = False
    pickup_confirmed_at: Optional[datetime] = None
    delivery_confirmed: bool = False
    delivery_confirmed_at: Optional[datetime] = None
    ready_confirmed_at: Optional[datetime] = None

    @property
    def status(self) -> str:
        return self.phase

    @property
    def is_ready(self) -> bool:
        return self.phase == "ready"

    @property
    def is_completed(self) -> bool:
        return self.delivery_confirmed or self.phase == "completed"

    @property
    def is_cancelled(self) -> bool:
        return self.phase == "cancelled"

    @property
    def classification(self) -> Classification:
        # completed wins over cancelled: a delivered schedule stays completed
        if self.is_completed:
            return "completed"
        if self.is_cancelled:
            return "cancelled"
        return "pending"

    @classmethod
    def from_doc(cls, doc: dict) -> "ScheduleState":
        return cls(
            phase=normalize_status(doc.get("status")),
            pickup_confirmed=bool(doc.get("pickupConfirmed") or False),
            pickup_confirmed_at=doc.get("pickupConfirmedAt"),
            delivery_confirmed=bool(doc.get("deliveryConfirmed") or False),
            delivery_confirmed_at=doc.get("deliveryConfirmedAt"),
            ready_confirmed_at=doc.get("readyConfirmedAt"),
        )

    def to_fields(self) -> dict:
        return {
            "status": self.phase,
            "pickupConfirmed": self.pickup_confirmed,
            "pickupConfirmedAt": self.pickup_confirmed_at,
            "deliveryConfirmed": self.delivery_confirmed,
            "deliveryConfirmedAt": self.delivery_confirmed_at,
            "readyConfirmedAt": self.ready_confirmed_at,
        }

    def changed_fields(self, before: "ScheduleState") -> dict:
        old = before.to_fields()
        return {k: v for k, v in self.to_fields().items() if old.get(k) != v}


# ---- transitions ----

def confirm_readiness(state: ScheduleState, now: datetime) -> ScheduleState:
    if state.is_ready:
        raise TransitionRejected("Readiness is already confirmed for this pickup")
    return state.model_copy(update={"phase": "ready", "ready_confirmed_at": now})


def confirm_pickup(state: ScheduleState, now: datetime) -> ScheduleState:
    # status untouched: only delivery completes a schedule
    return state.model_copy(update={"pickup_confirmed": True, "pickup_confirmed_at": now})


def confirm_delivery(state: ScheduleState, now: datetime) -> ScheduleState:
    if not state.pickup_confirmed:
        raise TransitionRejected("Pickup must be confirmed before delivery")
    return state.model_copy(update={
        "delivery_confirmed": True,
        "delivery_confirmed_at": now,
        "phase": "completed",
    })


def cancel(state: ScheduleState) -> ScheduleState:
    return state.model_copy(update={"phase": "cancelled"})
