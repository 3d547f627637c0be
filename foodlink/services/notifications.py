"""Best-effort notification writes.

A notification is written only after the mutation it describes has succeeded,
and is not transactionally tied to it: if the write fails (or the process dies
in between) the schedule change stands with no notification. Two concurrent
identical transitions can produce two notifications. Delivery is therefore
at-least-once-or-never, never exactly-once.
"""
import logging
from typing import Optional

from foodlink.core.clock import utcnow
from foodlink.core.errors import BackendFailure
from foodlink.models.notification import Notification
from foodlink.models.schedule import Schedule

logger = logging.getLogger(__name__)


def default_message(type_: str, schedule: Schedule) -> str:
    store = schedule.store_name or "Store"
    if type_ == "readiness_confirmed":
        return f"Store {store} has confirmed that the donation will be ready."
    if type_ == "pickup_confirmed":
        return f"Pickup confirmed at {store}."
    if type_ == "delivery_confirmed":
        return f"Delivery confirmed for pickup at {store}."
    if type_ == "pickup_reminder":
        return f"Upcoming pickup at {store} in about 24 hours."
    return ""


class NotificationEmitter:
    def __init__(self, repo, clock=utcnow):
        self.repo = repo
        self.clock = clock

    async def emit(self, type_: str, schedule: Schedule, message: str | None = None) -> Optional[str]:
        note = Notification(
            type=type_,
            schedule_id=schedule.id,
            store_id=schedule.store_id,
            store_name=schedule.store_name,
            volunteer_id=schedule.volunteer_id,
            volunteer_name=schedule.volunteer_name,
            message=message or default_message(type_, schedule),
            created_at=self.clock(),
        )
        try:
            nid = await self.repo.insert_notification(note.to_doc())
        except BackendFailure:
            logger.warning("Notification %s for schedule %s was not written", type_, schedule.id)
            return None
        logger.info("Notification %s emitted for schedule %s", type_, schedule.id)
        return nid

    async def recent(self, limit: int = 50, schedule_id: str | None = None) -> list[Notification]:
        docs = await self.repo.list_notifications(limit=limit, schedule_id=schedule_id)
        return [Notification.from_doc(d) for d in docs]
