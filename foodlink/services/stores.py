import logging
from datetime import date
from typing import Iterable, List

from foodlink.core.clock import day_start, utcnow
from foodlink.core.errors import NotFound
from foodlink.core.security import Actor
from foodlink.models.people import Store

logger = logging.getLogger(__name__)


def normalize_dates(days: Iterable[date]) -> List[date]:
    return sorted(set(days))


class StoreService:
    def __init__(self, repo, clock=utcnow):
        self.repo = repo
        self.clock = clock

    async def get(self, store_id: str) -> Store:
        doc = await self.repo.get_store(store_id)
        if not doc:
            raise NotFound("Store not found")
        return Store.from_doc(doc)

    async def list(self) -> List[Store]:
        return [Store.from_doc(d) for d in await self.repo.list_stores()]

    async def decide(self, actor: Actor, store_id: str, approve: bool) -> Store:
        status = "approved" if approve else "rejected"
        if not await self.repo.update_store(store_id, {"status": status, "updatedAt": self.clock()}):
            raise NotFound("Store not found")
        logger.info("Store %s %s by staff %s", store_id, status, actor.id)
        return await self.get(store_id)

    async def set_unavailable_dates(self, actor: Actor, days: Iterable[date]) -> Store:
        """Replace the calling store's unavailable days (date-only, de-duplicated)."""
        cleaned = normalize_dates(days)
        fields = {
            "unavailableDates": [day_start(d) for d in cleaned],
            "updatedAt": self.clock(),
        }
        if not await self.repo.update_store(actor.id, fields):
            raise NotFound("Store profile not found")
        logger.info("Store %s marked %d unavailable day(s)", actor.id, len(cleaned))
        return await self.get(actor.id)
