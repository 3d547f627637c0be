"""Per-actor schedule views.

A store sees schedules with its ``storeId``, a volunteer those with its
``volunteerId``. Upcoming views keep today-or-later pickups (date only) in
ascending order; history views show everything, most recent first. Undated
schedules never appear in upcoming views and sort last everywhere else.
"""
import logging
from datetime import date
from typing import AsyncIterator, Iterable, List, Literal, Optional

from foodlink.core.clock import EPOCH, FAR_FUTURE, utcnow
from foodlink.models.schedule import Schedule
from foodlink.schemas import TrackingOut

logger = logging.getLogger(__name__)

View = Literal["upcoming", "history"]


def is_upcoming(schedule: Schedule, today: date) -> bool:
    day = schedule.pickup_day
    return day is not None and day >= today


def sort_ascending(schedules: Iterable[Schedule]) -> List[Schedule]:
    return sorted(schedules, key=lambda s: s.pickup_date or FAR_FUTURE)


def sort_descending(schedules: Iterable[Schedule]) -> List[Schedule]:
    return sorted(schedules, key=lambda s: s.pickup_date or EPOCH, reverse=True)


def shape(schedules: Iterable[Schedule], view: View, today: date) -> List[Schedule]:
    if view == "upcoming":
        return sort_ascending(s for s in schedules if is_upcoming(s, today))
    return sort_descending(schedules)


class AssignmentFeed:
    def __init__(self, repo, clock=utcnow):
        self.repo = repo
        self.clock = clock

    async def snapshot(
        self,
        store_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        view: View = "upcoming",
    ) -> List[Schedule]:
        if (store_id is None) == (volunteer_id is None):
            raise ValueError("Exactly one of store_id or volunteer_id is required")
        docs = await self.repo.list_schedules(store_id=store_id, volunteer_id=volunteer_id)
        return shape((Schedule.from_doc(d) for d in docs), view, self.clock().date())

    async def subscribe(
        self,
        store_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        view: View = "upcoming",
    ) -> AsyncIterator[List[Schedule]]:
        """Yield the full result set now and again after every schedule change.

        The change stream is opened before the first snapshot is read so no
        change between the two is lost. Closing the generator closes the stream.
        """
        stream = self.repo.watch_schedules()
        try:
            yield await self.snapshot(store_id, volunteer_id, view)
            async for _change in stream:
                yield await self.snapshot(store_id, volunteer_id, view)
        finally:
            await stream.close()
            logger.debug("Feed subscription closed (store=%s volunteer=%s)", store_id, volunteer_id)

    async def tracking(
        self,
        store_name: Optional[str] = None,
        volunteer_name: Optional[str] = None,
    ) -> TrackingOut:
        """Staff delivery tracking: every schedule, exact-match name filters."""
        schedules = [Schedule.from_doc(d) for d in await self.repo.list_schedules()]

        counts = {"pending": 0, "completed": 0, "cancelled": 0}
        store_names, volunteer_names = set(), set()
        for s in schedules:
            counts[s.classification] += 1
            if s.store_name.strip():
                store_names.add(s.store_name.strip())
            if s.volunteer_name.strip():
                volunteer_names.add(s.volunteer_name.strip())

        def keep(s: Schedule) -> bool:
            if store_name and s.store_name.strip() != store_name:
                return False
            if volunteer_name and s.volunteer_name.strip() != volunteer_name:
                return False
            return True

        return TrackingOut(
            schedules=sort_descending(s for s in schedules if keep(s)),
            pending_count=counts["pending"],
            completed_count=counts["completed"],
            cancelled_count=counts["cancelled"],
            store_names=sorted(store_names),
            volunteer_names=sorted(volunteer_names),
        )
