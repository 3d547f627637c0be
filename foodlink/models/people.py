from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import computed_field, field_validator

from foodlink.core.clock import as_utc, day_start
from foodlink.models.base import Document

ApprovalStatus = Literal["pending", "approved", "rejected"]

# precedence order for a volunteer's display name
VOLUNTEER_NAME_FIELDS = ("name", "fullName", "displayName", "username")


def volunteer_display_name(doc: dict) -> Optional[str]:
    for key in VOLUNTEER_NAME_FIELDS:
        value = doc.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


class Store(Document):
    store_name: str = ""
    status: ApprovalStatus = "pending"
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    unavailable_dates: List[date] = []
    updated_at: Optional[datetime] = None

    @field_validator("unavailable_dates", mode="before")
    @classmethod
    def _date_only(cls, v):
        out = []
        for item in v or []:
            if isinstance(item, datetime):
                out.append(as_utc(item).date())
            else:
                out.append(item)
        return out

    @computed_field
    @property
    def approved(self) -> bool:
        return self.status == "approved"

    def to_doc(self) -> dict:
        doc = super().to_doc()
        # BSON has no date-only type
        doc["unavailableDates"] = [day_start(d) for d in self.unavailable_dates]
        return doc


class Volunteer(Document):
    name: Optional[str] = None
    full_name: Optional[str] = None
    display_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    photo_url: Optional[str] = None
    status: str = "pending"

    @field_validator("name", "full_name", "display_name", "username", "email", "phone", "photo_url", mode="before")
    @classmethod
    def _text(cls, v):
        return None if v is None else str(v)

    @property
    def resolved_name(self) -> Optional[str]:
        """First non-blank of name, fullName, displayName, username."""
        return volunteer_display_name({
            "name": self.name,
            "fullName": self.full_name,
            "displayName": self.display_name,
            "username": self.username,
        })
