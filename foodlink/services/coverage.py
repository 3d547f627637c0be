import asyncio
from collections import Counter
from typing import Iterable

from foodlink.models.people import Store
from foodlink.schemas import CoverageOut, StoreCoverage


def compute_coverage(stores: Iterable[dict], schedules: Iterable[dict]) -> CoverageOut:
    """Join every store against every schedule.

    A store is covered once any schedule names it. Stores with no schedules
    still appear, with a count of zero.
    """
    schedules = list(schedules)
    counts = Counter()
    volunteers = set()
    for s in schedules:
        store_id = str(s.get("storeId") or "").strip()
        if store_id:
            counts[store_id] += 1
        vid = str(s.get("volunteerId") or "").strip()
        if vid:
            volunteers.add(vid)

    rows = []
    for doc in stores:
        store = Store.from_doc(doc)
        n = counts.get(store.id, 0)
        rows.append(StoreCoverage(
            store_id=store.id,
            store_name=store.store_name or "Unnamed store",
            schedule_count=n,
            covered=n >= 1,
        ))
    rows.sort(key=lambda r: (r.covered, r.store_name.lower()))

    covered = sum(1 for r in rows if r.covered)
    return CoverageOut(
        total_stores=len(rows),
        covered_stores=covered,
        uncovered_stores=len(rows) - covered,
        total_schedules=len(schedules),
        active_volunteers=len(volunteers),
        stores=rows,
    )


async def refresh_coverage(repo) -> CoverageOut:
    # one-shot fetch on demand; coverage is not a live view
    stores, schedules = await asyncio.gather(repo.list_stores(), repo.list_schedules())
    return compute_coverage(stores, schedules)
