"""Donation reporting: cursor pagination, name resolution, filtering,
grouped aggregation and CSV export.

Filtering runs over the pages loaded so far, never pushed down to the
database, so a report only reflects what the session has paged in.
"""
import base64
import binascii
import csv
import io
import json
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from foodlink.core.clock import as_utc, day_end, day_start
from foodlink.core.errors import BackendFailure, OperationInProgress, ValidationFailure
from foodlink.models.donation import Donation, to_float
from foodlink.models.people import Volunteer
from foodlink.schemas import DonationPage, DonationReport, GroupTotal, ReportRow

logger = logging.getLogger(__name__)

STORE_NAME_FIELDS = ("storeName", "store_name", "donorName", "donor_name", "store")
VOLUNTEER_ID_FIELDS = ("volunteerId", "volunteer_id")
VOLUNTEER_NAME_FIELDS = ("volunteerName", "volunteer_name", "volunteer")
TOTAL_WEIGHT_FIELDS = ("totalKg", "total_kg", "weightKg")

CSV_HEADER = ["date", "store", "volunteer", "food", "weightKg"]
CSV_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ---------------------------------------------------------------------------
# Field resolution
# ---------------------------------------------------------------------------

def _first_text(doc: dict, keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = doc.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def store_name(doc: dict) -> str:
    return _first_text(doc, STORE_NAME_FIELDS) or "Unknown store"


def volunteer_id(doc: dict) -> Optional[str]:
    return _first_text(doc, VOLUNTEER_ID_FIELDS)


def food_types(doc: dict) -> List[str]:
    out: List[str] = []
    items = doc.get("items")
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and item.get("foodType") is not None:
                ft = str(item["foodType"]).strip()
                if ft and ft not in out:
                    out.append(ft)
    return out


def donation_weight(doc: dict) -> float:
    """Explicit total if present, otherwise the sum of item ``kg`` values."""
    for key in TOTAL_WEIGHT_FIELDS:
        value = doc.get(key)
        if isinstance(value, (int, float, str)) and not isinstance(value, bool):
            return to_float(value)
    total = 0.0
    items = doc.get("items")
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict):
                total += to_float(item.get("kg"))
    return total


class VolunteerNameCache:
    """Volunteer id -> display name, each id fetched at most once.

    Lookups that find no document are remembered as ``None``; lookups that
    fail on the backend are not remembered, so the next prime retries them.
    """

    def __init__(self, repo):
        self.repo = repo
        self._names: Dict[str, Optional[str]] = {}

    def __contains__(self, vid: str) -> bool:
        return vid in self._names

    def get(self, vid: str) -> Optional[str]:
        return self._names.get(vid)

    def clear(self):
        self._names.clear()

    async def prime(self, ids: Iterable[str]):
        for vid in {i for i in ids if i} - set(self._names):
            try:
                doc = await self.repo.get_volunteer(vid)
            except BackendFailure:
                logger.warning("Volunteer lookup failed for %s; using fallback label", vid)
                continue
            self._names[vid] = Volunteer.from_doc(doc).resolved_name if doc else None


def volunteer_name(doc: dict, cache: Optional[VolunteerNameCache] = None) -> str:
    vid = volunteer_id(doc)
    if vid and cache is not None:
        cached = cache.get(vid)
        if cached:
            return cached
    name = _first_text(doc, VOLUNTEER_NAME_FIELDS)
    if name:
        return name
    if vid:
        return "Volunteer"
    return "Not recorded"


def resolve_row(doc: dict, cache: Optional[VolunteerNameCache] = None) -> ReportRow:
    return ReportRow(
        id=str(doc.get("_id", "")),
        date=as_utc(doc.get("date")),
        store=store_name(doc),
        volunteer=volunteer_name(doc, cache),
        food=", ".join(food_types(doc)),
        weight_kg=donation_weight(doc),
        status=doc.get("status"),
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

class DonationFilter(BaseModel):
    volunteer: str = ""
    store: str = ""
    food_type: str = ""
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def matches(self, doc: dict, cache: Optional[VolunteerNameCache] = None) -> bool:
        vol = self.volunteer.strip().lower()
        if vol and vol not in volunteer_name(doc, cache).lower():
            return False
        st = self.store.strip().lower()
        if st and st not in store_name(doc).lower():
            return False
        ft = self.food_type.strip().lower()
        if ft and not any(ft in t.lower() for t in food_types(doc)):
            return False
        # undated records are never cut by the date range
        when = as_utc(doc.get("date"))
        if when is not None:
            if self.date_from is not None and when < day_start(self.date_from):
                return False
            if self.date_to is not None and when > day_end(self.date_to):
                return False
        return True


# ---------------------------------------------------------------------------
# Aggregation & export
# ---------------------------------------------------------------------------

def group_totals(rows: Iterable[ReportRow], key: str) -> List[GroupTotal]:
    acc: Dict[str, list] = defaultdict(lambda: [0, 0.0])
    for row in rows:
        bucket = acc[getattr(row, key)]
        bucket[0] += 1
        bucket[1] += row.weight_kg
    out = [
        GroupTotal(name=name, count=c, total=t, average=(t / c) if c else 0.0)
        for name, (c, t) in acc.items()
    ]
    out.sort(key=lambda g: (-g.total, g.name))
    return out


def to_csv(rows: Iterable[ReportRow]) -> str:
    buf = io.StringIO()
    # QUOTE_MINIMAL quotes fields holding commas, quotes or newlines and doubles quotes
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in rows:
        writer.writerow([
            row.date.strftime(CSV_DATE_FORMAT) if row.date else "",
            row.store,
            row.volunteer,
            row.food,
            row.weight_kg,
        ])
    return buf.getvalue()


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def encode_cursor(doc: dict) -> str:
    when = as_utc(doc.get("date"))
    raw = json.dumps({"d": when.isoformat() if when else None, "id": str(doc["_id"])})
    return base64.urlsafe_b64encode(raw.encode()).decode()


def decode_cursor(token: str) -> Tuple[Optional[object], str]:
    try:
        data = json.loads(base64.urlsafe_b64decode(token.encode()).decode())
        return as_utc(data["d"]), str(data["id"])
    except (binascii.Error, ValueError, KeyError, TypeError):
        raise ValidationFailure("Invalid pagination cursor")


async def fetch_page(repo, page_size: int, cursor: Optional[str] = None) -> DonationPage:
    """One page of donations, newest first, strictly after ``cursor``.

    ``has_more`` is false only when the page comes back short; a final page
    that is exactly full still reports ``has_more`` and the next fetch is empty.
    """
    after = decode_cursor(cursor) if cursor else None
    docs = await repo.page_donations(page_size, after=after)
    return DonationPage(
        donations=[Donation.from_doc(d) for d in docs],
        has_more=len(docs) >= page_size,
        next_cursor=encode_cursor(docs[-1]) if docs else cursor,
    )


class DonationReportSession:
    """State of one reporting surface: the pages it has loaded and its cursor."""

    def __init__(self, repo, page_size: int = 25, cache: Optional[VolunteerNameCache] = None,
                 cursor: Optional[str] = None):
        self.repo = repo
        self.page_size = page_size
        self.cache = cache if cache is not None else VolunteerNameCache(repo)
        self.docs: List[dict] = []
        self.cursor: Optional[str] = cursor
        self.has_more = True
        self._loading = False

    async def refresh(self) -> int:
        self.docs = []
        self.cursor = None
        self.has_more = True
        self.cache.clear()
        return await self.load_more()

    async def load_more(self) -> int:
        if not self.has_more:
            return 0
        if self._loading:
            raise OperationInProgress("Donations are already loading")
        self._loading = True
        try:
            after = decode_cursor(self.cursor) if self.cursor else None
            docs = await self.repo.page_donations(self.page_size, after=after)
            if len(docs) < self.page_size:
                self.has_more = False
            if docs:
                self.cursor = encode_cursor(docs[-1])
            await self.cache.prime(volunteer_id(d) for d in docs)
            self.docs.extend(docs)
            return len(docs)
        finally:
            self._loading = False

    async def load_pages(self, pages: int) -> int:
        loaded = 0
        for _ in range(pages):
            if not self.has_more:
                break
            loaded += await self.load_more()
        return loaded

    def rows(self, flt: Optional[DonationFilter] = None) -> List[ReportRow]:
        flt = flt or DonationFilter()
        return [resolve_row(d, self.cache) for d in self.docs if flt.matches(d, self.cache)]

    def report(self, flt: Optional[DonationFilter] = None) -> DonationReport:
        rows = self.rows(flt)
        total = sum(r.weight_kg for r in rows)
        return DonationReport(
            count=len(rows),
            total_weight_kg=total,
            average_weight_kg=(total / len(rows)) if rows else 0.0,
            by_store=group_totals(rows, "store"),
            by_volunteer=group_totals(rows, "volunteer"),
            rows=rows,
            loaded=len(self.docs),
            has_more=self.has_more,
            next_cursor=self.cursor,
        )

    def export_csv(self, flt: Optional[DonationFilter] = None) -> str:
        return to_csv(self.rows(flt))
