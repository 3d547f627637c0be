# foodlink/repos/mongo.py
import functools
import logging
from typing import List, Optional, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from foodlink.core.errors import BackendFailure
from foodlink.models.base import oid

logger = logging.getLogger(__name__)

Cursor = Tuple[Optional[object], str]

DONATION_ORDER = [("date", DESCENDING), ("_id", DESCENDING)]


def backend_call(fn):
    """Wrap driver errors as BackendFailure so routers answer 503, not 500."""
    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PyMongoError as exc:
            logger.exception("MongoDB call %s failed", fn.__name__)
            raise BackendFailure(f"Backend error during {fn.__name__}") from exc
    return wrapper


def _after_filter(after: Cursor) -> dict:
    """Documents strictly after ``after`` in (date desc, _id desc) order."""
    last_date, last_id = after
    if last_date is None:
        return {"date": None, "_id": {"$lt": last_id}}
    return {"$or": [
        {"date": {"$lt": last_date}},
        {"date": last_date, "_id": {"$lt": last_id}},
        {"date": None},
    ]}


class MongoChangeStream:
    def __init__(self, stream):
        self._stream = stream

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        try:
            return await self._stream.next()
        except StopAsyncIteration:
            raise
        except PyMongoError as exc:
            # standalone servers have no change streams; needs a replica set
            raise BackendFailure("Schedule change stream failed") from exc

    async def close(self):
        await self._stream.close()


class MongoRepo:
    def __init__(self, db):
        self.db = db

    async def ensure_indexes(self):
        async def ensure_index(col, keys, name: str, **kwargs):
            existing = [ix["name"] async for ix in col.list_indexes()]
            if name in existing:
                return
            await col.create_index(keys, name=name, **kwargs)

        await ensure_index(self.db.schedules, [("storeId", ASCENDING)], "storeId_1")
        await ensure_index(self.db.schedules, [("volunteerId", ASCENDING)], "volunteerId_1")
        await ensure_index(self.db.schedules, [("status", ASCENDING)], "status_1")
        await ensure_index(self.db.donations, DONATION_ORDER, "date_-1__id_-1")
        await ensure_index(self.db.donations, [("volunteerId", ASCENDING)], "volunteerId_1", sparse=True)
        await ensure_index(self.db.notifications, [("createdAt", DESCENDING)], "createdAt_-1")

    async def _insert(self, col, doc: dict) -> str:
        doc = dict(doc)
        doc.setdefault("_id", oid())
        await col.insert_one(doc)
        return str(doc["_id"])

    async def _set(self, col, doc_id: str, fields: dict) -> bool:
        res = await col.update_one({"_id": doc_id}, {"$set": fields})
        return res.matched_count > 0

    # Stores
    @backend_call
    async def insert_store(self, doc: dict) -> str:
        return await self._insert(self.db.stores, doc)

    @backend_call
    async def get_store(self, store_id: str) -> Optional[dict]:
        return await self.db.stores.find_one({"_id": store_id})

    @backend_call
    async def list_stores(self) -> List[dict]:
        return [s async for s in self.db.stores.find({})]

    @backend_call
    async def update_store(self, store_id: str, fields: dict) -> bool:
        return await self._set(self.db.stores, store_id, fields)

    # Volunteers
    @backend_call
    async def insert_volunteer(self, doc: dict) -> str:
        return await self._insert(self.db.volunteers, doc)

    @backend_call
    async def get_volunteer(self, volunteer_id: str) -> Optional[dict]:
        return await self.db.volunteers.find_one({"_id": volunteer_id})

    @backend_call
    async def list_volunteers(self) -> List[dict]:
        return [v async for v in self.db.volunteers.find({})]

    # Schedules
    @backend_call
    async def insert_schedule(self, doc: dict) -> str:
        return await self._insert(self.db.schedules, doc)

    @backend_call
    async def get_schedule(self, schedule_id: str) -> Optional[dict]:
        return await self.db.schedules.find_one({"_id": schedule_id})

    @backend_call
    async def update_schedule(self, schedule_id: str, fields: dict) -> bool:
        return await self._set(self.db.schedules, schedule_id, fields)

    @backend_call
    async def delete_schedule(self, schedule_id: str) -> bool:
        res = await self.db.schedules.delete_one({"_id": schedule_id})
        return res.deleted_count > 0

    @backend_call
    async def list_schedules(
        self,
        store_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        statuses: Optional[List[str]] = None,
    ) -> List[dict]:
        q: dict = {}
        if store_id is not None:
            q["storeId"] = store_id
        if volunteer_id is not None:
            q["volunteerId"] = volunteer_id
        if statuses is not None:
            q["status"] = {"$in": statuses}
        return [s async for s in self.db.schedules.find(q)]

    def watch_schedules(self) -> MongoChangeStream:
        return MongoChangeStream(self.db.schedules.watch())

    # Donations
    @backend_call
    async def insert_donation(self, doc: dict) -> str:
        return await self._insert(self.db.donations, doc)

    @backend_call
    async def get_donation(self, donation_id: str) -> Optional[dict]:
        return await self.db.donations.find_one({"_id": donation_id})

    @backend_call
    async def update_donation(self, donation_id: str, fields: dict) -> bool:
        return await self._set(self.db.donations, donation_id, fields)

    @backend_call
    async def page_donations(self, limit: int, after: Optional[Cursor] = None) -> List[dict]:
        q = _after_filter(after) if after is not None else {}
        cur = self.db.donations.find(q).sort(DONATION_ORDER).limit(limit)
        return [d async for d in cur]

    @backend_call
    async def list_donations(self, volunteer_id: Optional[str] = None,
                             since=None, until=None, limit: Optional[int] = None) -> List[dict]:
        q: dict = {}
        if volunteer_id is not None:
            q["volunteerId"] = volunteer_id
        if since is not None or until is not None:
            q["date"] = {}
            if since is not None:
                q["date"]["$gte"] = since
            if until is not None:
                q["date"]["$lt"] = until
        cur = self.db.donations.find(q).sort(DONATION_ORDER)
        if limit:
            cur = cur.limit(limit)
        return [d async for d in cur]

    # Notifications
    @backend_call
    async def insert_notification(self, doc: dict) -> str:
        return await self._insert(self.db.notifications, doc)

    @backend_call
    async def list_notifications(self, limit: int = 50, schedule_id: Optional[str] = None) -> List[dict]:
        q = {"scheduleId": schedule_id} if schedule_id else {}
        cur = self.db.notifications.find(q).sort("createdAt", DESCENDING).limit(limit)
        return [n async for n in cur]

    # Monthly reports
    @backend_call
    async def insert_monthly_report(self, doc: dict) -> str:
        return await self._insert(self.db.monthlyReports, doc)
