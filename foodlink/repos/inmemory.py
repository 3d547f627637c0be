# foodlink/repos/inmemory.py
import asyncio
import copy
from typing import Dict, List, Optional, Tuple

from foodlink.core.clock import EPOCH, as_utc
from foodlink.models.base import oid

Cursor = Tuple[Optional[object], str]


def _donation_key(doc: dict) -> tuple:
    # mirrors MongoDB's sort on (date desc, _id desc): undated records sort last
    dt = as_utc(doc.get("date"))
    if dt is None:
        return (0, EPOCH, str(doc["_id"]))
    return (1, dt, str(doc["_id"]))


class InMemoryChangeStream:
    """Queue-backed change feed; registered as soon as it is created."""

    def __init__(self, repo: "InMemoryRepo"):
        self._repo = repo
        self._queue: asyncio.Queue = asyncio.Queue()
        repo._watchers.add(self._queue)

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        if self._queue is None:
            raise StopAsyncIteration
        return await self._queue.get()

    async def close(self):
        if self._queue is not None:
            self._repo._watchers.discard(self._queue)
            self._queue = None


class InMemoryRepo:
    def __init__(self):
        self.stores: Dict[str, dict] = {}
        self.volunteers: Dict[str, dict] = {}
        self.schedules: Dict[str, dict] = {}
        self.donations: Dict[str, dict] = {}
        self.notifications: Dict[str, dict] = {}
        self.monthly_reports: Dict[str, dict] = {}
        self._watchers: set = set()

    async def ensure_indexes(self):
        return None

    @staticmethod
    def _put(table: Dict[str, dict], doc: dict) -> str:
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", oid())
        table[str(doc["_id"])] = doc
        return str(doc["_id"])

    @staticmethod
    def _get(table: Dict[str, dict], doc_id: str) -> Optional[dict]:
        doc = table.get(doc_id)
        return copy.deepcopy(doc) if doc else None

    @staticmethod
    def _set(table: Dict[str, dict], doc_id: str, fields: dict) -> bool:
        if doc_id not in table:
            return False
        table[doc_id].update(copy.deepcopy(fields))
        return True

    def _publish(self, op: str, doc_id: str):
        for q in list(self._watchers):
            q.put_nowait({"operationType": op, "documentKey": {"_id": doc_id}})

    # Stores
    async def insert_store(self, doc: dict) -> str:
        return self._put(self.stores, doc)

    async def get_store(self, store_id: str) -> Optional[dict]:
        return self._get(self.stores, store_id)

    async def list_stores(self) -> List[dict]:
        return [copy.deepcopy(s) for s in self.stores.values()]

    async def update_store(self, store_id: str, fields: dict) -> bool:
        return self._set(self.stores, store_id, fields)

    # Volunteers
    async def insert_volunteer(self, doc: dict) -> str:
        return self._put(self.volunteers, doc)

    async def get_volunteer(self, volunteer_id: str) -> Optional[dict]:
        return self._get(self.volunteers, volunteer_id)

    async def list_volunteers(self) -> List[dict]:
        return [copy.deepcopy(v) for v in self.volunteers.values()]

    # Schedules
    async def insert_schedule(self, doc: dict) -> str:
        sid = self._put(self.schedules, doc)
        self._publish("insert", sid)
        return sid

    async def get_schedule(self, schedule_id: str) -> Optional[dict]:
        return self._get(self.schedules, schedule_id)

    async def update_schedule(self, schedule_id: str, fields: dict) -> bool:
        ok = self._set(self.schedules, schedule_id, fields)
        if ok:
            self._publish("update", schedule_id)
        return ok

    async def delete_schedule(self, schedule_id: str) -> bool:
        if self.schedules.pop(schedule_id, None) is None:
            return False
        self._publish("delete", schedule_id)
        return True

    async def list_schedules(
        self,
        store_id: Optional[str] = None,
        volunteer_id: Optional[str] = None,
        statuses: Optional[List[str]] = None,
    ) -> List[dict]:
        out = []
        for s in self.schedules.values():
            if store_id is not None and s.get("storeId") != store_id:
                continue
            if volunteer_id is not None and s.get("volunteerId") != volunteer_id:
                continue
            if statuses is not None and s.get("status") not in statuses:
                continue
            out.append(copy.deepcopy(s))
        return out

    def watch_schedules(self) -> InMemoryChangeStream:
        return InMemoryChangeStream(self)

    # Donations
    async def insert_donation(self, doc: dict) -> str:
        return self._put(self.donations, doc)

    async def get_donation(self, donation_id: str) -> Optional[dict]:
        return self._get(self.donations, donation_id)

    async def update_donation(self, donation_id: str, fields: dict) -> bool:
        return self._set(self.donations, donation_id, fields)

    async def page_donations(self, limit: int, after: Optional[Cursor] = None) -> List[dict]:
        ordered = sorted(self.donations.values(), key=_donation_key, reverse=True)
        if after is not None:
            last = _donation_key({"_id": after[1], "date": after[0]})
            ordered = [d for d in ordered if _donation_key(d) < last]
        return [copy.deepcopy(d) for d in ordered[:limit]]

    async def list_donations(self, volunteer_id: Optional[str] = None,
                             since=None, until=None, limit: Optional[int] = None) -> List[dict]:
        out = []
        for d in sorted(self.donations.values(), key=_donation_key, reverse=True):
            dt = as_utc(d.get("date"))
            if volunteer_id is not None and d.get("volunteerId") != volunteer_id:
                continue
            if since is not None and (dt is None or dt < since):
                continue
            if until is not None and (dt is None or dt >= until):
                continue
            out.append(copy.deepcopy(d))
        return out[:limit] if limit else out

    # Notifications
    async def insert_notification(self, doc: dict) -> str:
        return self._put(self.notifications, doc)

    async def list_notifications(self, limit: int = 50, schedule_id: Optional[str] = None) -> List[dict]:
        vals = [n for n in self.notifications.values()
                if schedule_id is None or n.get("scheduleId") == schedule_id]
        vals.sort(key=lambda n: as_utc(n.get("createdAt")) or EPOCH, reverse=True)
        return [copy.deepcopy(n) for n in vals[:limit]]

    # Monthly reports
    async def insert_monthly_report(self, doc: dict) -> str:
        return self._put(self.monthly_reports, doc)
