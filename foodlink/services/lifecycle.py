"""Schedule lifecycle operations.

Each operation checks the actor, loads the schedule, derives the next
``ScheduleState`` through ``foodlink.core.states`` and writes only the fields
that changed. Writes are plain ``$set`` updates: there is no version check, so
two actors racing on one schedule resolve as last-write-wins, and two
concurrent ``confirm_readiness`` calls can both succeed and both notify.
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from foodlink.core import states
from foodlink.core.clock import day_start, parse_hhmm, utcnow
from foodlink.core.errors import (
    NotFound,
    OperationInProgress,
    ValidationFailure,
    forbidden,
)
from foodlink.core.security import Actor
from foodlink.models.base import oid
from foodlink.models.people import Store, Volunteer
from foodlink.models.schedule import Schedule
from foodlink.schemas import ScheduleCreate, ScheduleCreated, ScheduleEdit, TransitionOut
from foodlink.services.notifications import NotificationEmitter

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Refuses to start an operation the same surface already has outstanding.

    Keys are (actor id, operation, schedule id). This is process-local
    bookkeeping, not a lock on the schedule: a different actor, or another
    server process, is not blocked.
    """

    def __init__(self):
        self._keys: set = set()

    @asynccontextmanager
    async def hold(self, *key):
        if key in self._keys:
            raise OperationInProgress("This operation is already in progress")
        self._keys.add(key)
        try:
            yield
        finally:
            self._keys.discard(key)


def format_time_window(start: str, end: str) -> str:
    """``"09:00", "13:30"`` -> ``"09:00 AM - 01:30 PM"``."""
    def fmt(text: str) -> str:
        h, m = parse_hhmm(text)
        return datetime(2000, 1, 1, h, m).strftime("%I:%M %p")
    return f"{fmt(start)} - {fmt(end)}"


class ScheduleLifecycle:
    def __init__(self, repo, emitter: NotificationEmitter, guard: Optional[InFlightGuard] = None, clock=utcnow):
        self.repo = repo
        self.emitter = emitter
        self.guard = guard or InFlightGuard()
        self.clock = clock

    # ---- helpers ----

    @staticmethod
    def _check_role(action: str, actor: Actor):
        if not states.can_perform(action, actor.role):
            raise forbidden(f"Role '{actor.role}' may not {action.replace('_', ' ')}")

    async def _load(self, schedule_id: str) -> Schedule:
        doc = await self.repo.get_schedule(schedule_id)
        if not doc:
            raise NotFound("Schedule not found")
        return Schedule.from_doc(doc)

    async def _write(self, schedule: Schedule, fields: dict) -> Schedule:
        fields = dict(fields)
        fields["updatedAt"] = self.clock()
        if not await self.repo.update_schedule(schedule.id, fields):
            # deleted between read and write
            raise NotFound("Schedule not found")
        return await self._load(schedule.id)

    async def _apply(self, schedule: Schedule, new_state: states.ScheduleState) -> Schedule:
        return await self._write(schedule, new_state.changed_fields(schedule.state))

    async def _resolve_store(self, store_id: str) -> Store:
        doc = await self.repo.get_store(store_id)
        if not doc:
            raise NotFound(f"Store {store_id} not found")
        return Store.from_doc(doc)

    async def _resolve_volunteer_name(self, volunteer_id: str) -> str:
        doc = await self.repo.get_volunteer(volunteer_id)
        if not doc:
            raise NotFound(f"Volunteer {volunteer_id} not found")
        return Volunteer.from_doc(doc).resolved_name or "Unnamed volunteer"

    # ---- store ----

    async def confirm_readiness(self, actor: Actor, schedule_id: str) -> TransitionOut:
        self._check_role("confirm_readiness", actor)
        async with self.guard.hold(actor.id, "confirm_readiness", schedule_id):
            schedule = await self._load(schedule_id)
            if schedule.store_id != actor.id:
                raise forbidden("Only the store for this pickup can confirm readiness")
            new_state = states.confirm_readiness(schedule.state, self.clock())
            schedule = await self._apply(schedule, new_state)
            logger.info("Schedule %s marked ready by store %s", schedule.id, actor.id)

            nid = None
            if schedule.volunteer_id:
                nid = await self.emitter.emit("readiness_confirmed", schedule)
        return TransitionOut(schedule=schedule, notification_id=nid)

    # ---- volunteer ----

    async def _load_assigned(self, actor: Actor, schedule_id: str) -> Schedule:
        schedule = await self._load(schedule_id)
        if schedule.volunteer_id != actor.id:
            raise forbidden("Only the assigned volunteer can confirm this pickup")
        return schedule

    async def confirm_pickup(self, actor: Actor, schedule_id: str) -> TransitionOut:
        self._check_role("confirm_pickup", actor)
        async with self.guard.hold(actor.id, "confirm_pickup", schedule_id):
            schedule = await self._load_assigned(actor, schedule_id)
            new_state = states.confirm_pickup(schedule.state, self.clock())
            schedule = await self._apply(schedule, new_state)
            logger.info("Pickup confirmed for schedule %s by volunteer %s", schedule.id, actor.id)
            nid = await self.emitter.emit("pickup_confirmed", schedule)
        return TransitionOut(schedule=schedule, notification_id=nid)

    async def confirm_delivery(self, actor: Actor, schedule_id: str) -> TransitionOut:
        self._check_role("confirm_delivery", actor)
        async with self.guard.hold(actor.id, "confirm_delivery", schedule_id):
            schedule = await self._load_assigned(actor, schedule_id)
            # raises TransitionRejected before any write when pickup is unconfirmed
            new_state = states.confirm_delivery(schedule.state, self.clock())
            schedule = await self._apply(schedule, new_state)
            logger.info("Delivery confirmed for schedule %s by volunteer %s", schedule.id, actor.id)
            nid = await self.emitter.emit("delivery_confirmed", schedule)
        return TransitionOut(schedule=schedule, notification_id=nid)

    # ---- staff ----

    async def create_schedule(self, actor: Actor, body: ScheduleCreate) -> ScheduleCreated:
        self._check_role("create", actor)
        if body.time_window and body.time_window.strip():
            window = body.time_window.strip()
        elif body.start_time and body.end_time:
            window = format_time_window(body.start_time, body.end_time)
        else:
            raise ValidationFailure("Please select store, date, and time window")

        store = await self._resolve_store(body.store_id)
        volunteer_name = ""
        if body.volunteer_id:
            volunteer_name = await self._resolve_volunteer_name(body.volunteer_id)

        now = self.clock()
        schedule = Schedule(
            id=oid(),
            store_id=store.id,
            store_name=store.store_name,
            volunteer_id=body.volunteer_id or None,
            volunteer_name=volunteer_name,
            pickup_date=day_start(body.pickup_date),
            start_time=body.start_time,
            end_time=body.end_time,
            time_window=window,
            status="scheduled",
            notes=body.notes,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        await self.repo.insert_schedule(schedule.to_doc())

        unavailable = body.pickup_date in store.unavailable_dates
        if unavailable:
            logger.warning("Schedule %s created on a day store %s marked unavailable", schedule.id, store.id)
        logger.info("Schedule %s created for store %s by %s", schedule.id, store.id, actor.id)
        return ScheduleCreated(schedule=schedule, store_unavailable=unavailable)

    async def edit_schedule(self, actor: Actor, schedule_id: str, body: ScheduleEdit) -> Schedule:
        """Change store, date, time or volunteer.

        Confirmation flags are left untouched, so a reassigned schedule keeps
        whatever pickup/delivery confirmation it already had.
        """
        self._check_role("edit", actor)
        schedule = await self._load(schedule_id)
        given = body.model_fields_set
        fields: dict = {}

        if "store_id" in given and body.store_id and body.store_id != schedule.store_id:
            store = await self._resolve_store(body.store_id)
            fields["storeId"] = store.id
            fields["storeName"] = store.store_name
        if "pickup_date" in given and body.pickup_date is not None:
            fields["pickupDate"] = day_start(body.pickup_date)
        if "start_time" in given:
            fields["startTime"] = body.start_time
        if "end_time" in given:
            fields["endTime"] = body.end_time
        if "time_window" in given and body.time_window is not None:
            fields["timeWindow"] = body.time_window.strip()
        elif {"start_time", "end_time"} & given:
            start = fields.get("startTime", schedule.start_time)
            end = fields.get("endTime", schedule.end_time)
            if start and end:
                fields["timeWindow"] = format_time_window(start, end)
        if "volunteer_id" in given:
            if body.volunteer_id:
                fields["volunteerId"] = body.volunteer_id
                fields["volunteerName"] = await self._resolve_volunteer_name(body.volunteer_id)
            else:
                fields["volunteerId"] = None
                fields["volunteerName"] = ""
        if "notes" in given and body.notes is not None:
            fields["notes"] = body.notes

        if not fields:
            return schedule
        schedule = await self._write(schedule, fields)
        logger.info("Schedule %s edited by %s: %s", schedule.id, actor.id, sorted(fields))
        return schedule

    async def cancel_schedule(self, actor: Actor, schedule_id: str) -> Schedule:
        self._check_role("cancel", actor)
        schedule = await self._load(schedule_id)
        schedule = await self._apply(schedule, states.cancel(schedule.state))
        logger.info("Schedule %s cancelled by %s", schedule.id, actor.id)
        return schedule

    async def delete_schedule(self, actor: Actor, schedule_id: str) -> None:
        self._check_role("delete", actor)
        if not await self.repo.delete_schedule(schedule_id):
            raise NotFound("Schedule not found")
        logger.info("Schedule %s deleted by %s", schedule_id, actor.id)
