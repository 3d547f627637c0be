from datetime import datetime
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from foodlink.core.clock import as_utc
from foodlink.models.base import Document

DonationStatus = Literal["pending", "approved", "rejected", "completed"]
DONATION_STATUSES = ["pending", "approved", "rejected", "completed"]


def normalize_donation_status(raw) -> DonationStatus:
    value = str(raw or "").strip().lower()
    return value if value in DONATION_STATUSES else "pending"


def to_float(value) -> float:
    """Numbers and numeric strings count; anything else is zero."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return 0.0
    return 0.0


class DonationItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    food_type: str = ""
    boxes: int = 0
    kg: float = 0.0

    @field_validator("food_type", mode="before")
    @classmethod
    def _food_type(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("boxes", mode="before")
    @classmethod
    def _boxes(cls, v):
        return int(to_float(v))

    @field_validator("kg", mode="before")
    @classmethod
    def _kg(cls, v):
        return to_float(v)


def compute_totals(items: List[DonationItem]) -> Tuple[int, float]:
    return sum(i.boxes for i in items), sum(i.kg for i in items)


class Donation(Document):
    volunteer_id: Optional[str] = None
    volunteer_name: Optional[str] = None
    volunteer_email: Optional[str] = None
    store_id: str = ""
    store_name: str = ""
    items: List[DonationItem] = []
    total_boxes: int = 0
    total_kg: float = 0.0
    notes: str = ""
    date: Optional[datetime] = None
    status: DonationStatus = "pending"
    approved_at: Optional[datetime] = None
    created_manually: bool = False
    created_at: Optional[datetime] = None

    @field_validator("date", "approved_at", "created_at", mode="before")
    @classmethod
    def _utc(cls, v):
        return as_utc(v)

    @field_validator("total_boxes", mode="before")
    @classmethod
    def _total_boxes(cls, v):
        return int(to_float(v))

    @field_validator("total_kg", mode="before")
    @classmethod
    def _total_kg(cls, v):
        return to_float(v)

    @field_validator("notes", "store_id", "store_name", mode="before")
    @classmethod
    def _none_to_blank(cls, v):
        return "" if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, v):
        return normalize_donation_status(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        # legacy rows may hold null or non-dict entries
        if not isinstance(v, list):
            return []
        return [i for i in v if isinstance(i, (dict, DonationItem))]

    def with_items(self, items: List[DonationItem]) -> "Donation":
        boxes, kg = compute_totals(items)
        return self.model_copy(update={"items": items, "total_boxes": boxes, "total_kg": kg})
