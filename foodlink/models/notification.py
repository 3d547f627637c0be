from datetime import datetime
from typing import Literal, Optional

from foodlink.models.base import Document

NotificationType = Literal[
    "readiness_confirmed",
    "pickup_confirmed",
    "delivery_confirmed",
    "pickup_reminder",
]


class Notification(Document):
    type: NotificationType
    schedule_id: str
    store_id: str = ""
    store_name: str = ""
    volunteer_id: Optional[str] = None
    volunteer_name: str = ""
    message: str = ""
    created_at: Optional[datetime] = None
