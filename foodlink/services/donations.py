import logging
from typing import List

from foodlink.core.clock import utcnow
from foodlink.core.errors import NotFound, ValidationFailure
from foodlink.core.security import Actor
from foodlink.models.base import oid
from foodlink.models.donation import Donation, DonationItem
from foodlink.models.people import Store, Volunteer
from foodlink.schemas import DonationEdit, DonationIn, ManualDonationIn

logger = logging.getLogger(__name__)


def validate_items(items: List[DonationItem]) -> List[DonationItem]:
    """Reject the whole list on the first bad row, naming it (1-based)."""
    if not items:
        raise ValidationFailure("Add at least one donation item.")
    for n, item in enumerate(items, start=1):
        if not item.food_type:
            raise ValidationFailure(f"Item {n}: choose a food type.")
        if item.boxes < 0 or item.kg < 0:
            raise ValidationFailure(f"Item {n}: boxes and kg cannot be negative.")
        if item.boxes <= 0 and item.kg <= 0:
            raise ValidationFailure(f"Item {n}: enter boxes and/or kg greater than 0.")
    return items


class DonationService:
    def __init__(self, repo, clock=utcnow):
        self.repo = repo
        self.clock = clock

    async def _store(self, store_id: str) -> Store:
        doc = await self.repo.get_store(store_id)
        if not doc:
            raise NotFound(f"Store {store_id} not found")
        return Store.from_doc(doc)

    async def get(self, donation_id: str) -> Donation:
        doc = await self.repo.get_donation(donation_id)
        if not doc:
            raise NotFound("Donation not found")
        return Donation.from_doc(doc)

    async def create(self, actor: Actor, body: DonationIn) -> Donation:
        """Volunteer-submitted donation, pending staff review."""
        items = validate_items(body.items)
        store = await self._store(body.store_id)
        profile = await self.repo.get_volunteer(actor.id)
        now = self.clock()

        donation = Donation(
            id=oid(),
            volunteer_id=actor.id,
            volunteer_name=(Volunteer.from_doc(profile).resolved_name if profile else None) or "",
            volunteer_email=actor.email,
            store_id=store.id,
            store_name=store.store_name,
            notes=body.notes.strip(),
            date=body.date or now,
            status="pending",
            created_manually=False,
            created_at=now,
        ).with_items(items)
        await self.repo.insert_donation(donation.to_doc())
        logger.info("Donation %s recorded by volunteer %s (%.2f kg)", donation.id, actor.id, donation.total_kg)
        return donation

    async def manual_entry(self, actor: Actor, body: ManualDonationIn) -> Donation:
        """Staff back-fill of a donation known only by its totals."""
        if body.total_boxes <= 0 and body.total_kg <= 0:
            raise ValidationFailure("Enter boxes and/or kg greater than 0.")
        store = await self._store(body.store_id)

        donation = Donation(
            id=oid(),
            volunteer_name=body.volunteer_name.strip(),
            volunteer_email=body.volunteer_email,
            store_id=store.id,
            store_name=store.store_name,
            total_boxes=body.total_boxes,
            total_kg=body.total_kg,
            notes=body.notes.strip(),
            date=body.date,
            status="completed",
            created_manually=True,
            created_at=self.clock(),
        )
        await self.repo.insert_donation(donation.to_doc())
        logger.info("Manual donation %s entered by staff %s", donation.id, actor.id)
        return donation

    async def edit(self, actor: Actor, donation_id: str, body: DonationEdit) -> Donation:
        items = validate_items(body.items)
        donation = (await self.get(donation_id)).with_items(items)
        fields = {
            "items": [i.model_dump(by_alias=True) for i in donation.items],
            "totalBoxes": donation.total_boxes,
            "totalKg": donation.total_kg,
            "notes": body.notes.strip(),
        }
        if body.date is not None:
            fields["date"] = body.date
        if not await self.repo.update_donation(donation_id, fields):
            raise NotFound("Donation not found")
        logger.info("Donation %s edited by staff %s", donation_id, actor.id)
        return await self.get(donation_id)

    async def review(self, actor: Actor, donation_id: str, status: str) -> Donation:
        fields = {"status": status}
        if status == "approved":
            fields["approvedAt"] = self.clock()
        if not await self.repo.update_donation(donation_id, fields):
            raise NotFound("Donation not found")
        logger.info("Donation %s marked %s by staff %s", donation_id, status, actor.id)
        return await self.get(donation_id)

    async def recent_for_volunteer(self, actor: Actor, limit: int = 30) -> List[Donation]:
        docs = await self.repo.list_donations(volunteer_id=actor.id, limit=limit)
        return [Donation.from_doc(d) for d in docs]
