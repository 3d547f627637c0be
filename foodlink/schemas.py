# foodlink/schemas.py
from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from foodlink.models.donation import Donation, DonationItem
from foodlink.models.schedule import Schedule

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --------------------------
# Schedules
# --------------------------
class ScheduleCreate(Camel):
    store_id: str = Field(min_length=1)
    volunteer_id: Optional[str] = None
    pickup_date: date
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=HHMM)
    time_window: Optional[str] = None
    notes: str = ""


class ScheduleEdit(Camel):
    store_id: Optional[str] = Field(None, min_length=1)
    pickup_date: Optional[date] = None
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=HHMM)
    time_window: Optional[str] = None
    volunteer_id: Optional[str] = None
    notes: Optional[str] = None


class ScheduleCreated(Camel):
    schedule: Schedule
    store_unavailable: bool = False


class TransitionOut(Camel):
    schedule: Schedule
    notification_id: Optional[str] = None


# --------------------------
# Feeds
# --------------------------
class TrackingOut(Camel):
    schedules: List[Schedule]
    pending_count: int
    completed_count: int
    cancelled_count: int
    store_names: List[str]
    volunteer_names: List[str]


# --------------------------
# Coverage
# --------------------------
class StoreCoverage(Camel):
    store_id: str
    store_name: str
    schedule_count: int
    covered: bool


class CoverageOut(Camel):
    total_stores: int
    covered_stores: int
    uncovered_stores: int
    total_schedules: int
    active_volunteers: int
    stores: List[StoreCoverage]


# --------------------------
# Donations
# --------------------------
class DonationIn(Camel):
    store_id: str = Field(min_length=1)
    items: List[DonationItem]
    notes: str = ""
    date: Optional[datetime] = None


class DonationEdit(Camel):
    items: List[DonationItem]
    notes: str = ""
    date: Optional[datetime] = None


class ManualDonationIn(Camel):
    store_id: str = Field(min_length=1)
    date: datetime
    volunteer_name: str = ""
    volunteer_email: Optional[EmailStr] = None
    total_boxes: int = Field(0, ge=0)
    total_kg: float = Field(0.0, ge=0)
    notes: str = ""

    @field_validator("volunteer_email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        # "valid email or leave blank"
        if isinstance(v, str) and not v.strip():
            return None
        return v


class DonationReview(Camel):
    status: Literal["approved", "rejected"]


class DonationList(Camel):
    donations: List[Donation]


# --------------------------
# Reports
# --------------------------
class ReportRow(Camel):
    id: str
    date: Optional[datetime] = None
    store: str
    volunteer: str
    food: str
    weight_kg: float
    status: Optional[str] = None


class GroupTotal(Camel):
    name: str
    count: int
    total: float
    average: float


class DonationReport(Camel):
    count: int
    total_weight_kg: float
    average_weight_kg: float
    by_store: List[GroupTotal]
    by_volunteer: List[GroupTotal]
    rows: List[ReportRow]
    loaded: int
    has_more: bool
    next_cursor: Optional[str] = None


class DonationPage(Camel):
    donations: List[Donation]
    has_more: bool
    next_cursor: Optional[str] = None


class MonthlyReportOut(Camel):
    id: str
    year: int
    month: int
    total_donations: int
    total_weight_kg: float
    avg_weight_kg_per_donation: float
    by_store: Dict[str, float]
    by_volunteer: Dict[str, float]
    by_store_donation_counts: Dict[str, int]
    by_volunteer_donation_counts: Dict[str, int]
    summary_text: str


class RemindersOut(Camel):
    reminded: List[str]
    notification_ids: List[Optional[str]] = []


# --------------------------
# Stores
# --------------------------
class StoreDecision(Camel):
    approve: bool


class UnavailableDatesIn(Camel):
    dates: List[date]
