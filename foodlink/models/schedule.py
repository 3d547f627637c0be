from datetime import date, datetime
from typing import Optional

from pydantic import computed_field, field_validator

from foodlink.core.clock import as_utc
from foodlink.core.states import Classification, Phase, ScheduleState, normalize_status
from foodlink.models.base import Document


class Schedule(Document):
    store_id: str = ""
    store_name: str = ""
    volunteer_id: Optional[str] = None
    volunteer_name: str = ""
    pickup_date: Optional[datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    time_window: str = ""
    status: Phase = "scheduled"
    pickup_confirmed: bool = False
    pickup_confirmed_at: Optional[datetime] = None
    delivery_confirmed: bool = False
    delivery_confirmed_at: Optional[datetime] = None
    ready_confirmed_at: Optional[datetime] = None
    notes: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reminder_sent: bool = False
    reminder_sent_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return normalize_status(v)

    @field_validator("volunteer_id", mode="before")
    @classmethod
    def _blank_volunteer(cls, v):
        # unassigned schedules were historically written with ""
        if v is None or not str(v).strip():
            return None
        return str(v)

    @field_validator("store_id", "store_name", "volunteer_name", "time_window", "notes", mode="before")
    @classmethod
    def _none_to_blank(cls, v):
        return "" if v is None else v

    @field_validator(
        "pickup_date", "pickup_confirmed_at", "delivery_confirmed_at",
        "ready_confirmed_at", "created_at", "updated_at", "reminder_sent_at",
        mode="before",
    )
    @classmethod
    def _utc(cls, v):
        return as_utc(v)

    @property
    def state(self) -> ScheduleState:
        return ScheduleState(
            phase=self.status,
            pickup_confirmed=self.pickup_confirmed,
            pickup_confirmed_at=self.pickup_confirmed_at,
            delivery_confirmed=self.delivery_confirmed,
            delivery_confirmed_at=self.delivery_confirmed_at,
            ready_confirmed_at=self.ready_confirmed_at,
        )

    @property
    def pickup_day(self) -> Optional[date]:
        return self.pickup_date.date() if self.pickup_date else None

    @computed_field
    @property
    def classification(self) -> Classification:
        return self.state.classification
