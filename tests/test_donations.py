from datetime import datetime, timezone

import pytest

from conftest import NOW, STAFF, VOL_V1, fixed_clock
from foodlink.core.errors import NotFound, ValidationFailure
from foodlink.models.donation import DonationItem
from foodlink.schemas import DonationEdit, DonationIn, ManualDonationIn
from foodlink.services.donations import DonationService, validate_items

pytestmark = pytest.mark.anyio


def items(*rows):
    return [DonationItem(food_type=f, boxes=b, kg=k) for f, b, k in rows]


async def test_volunteer_donation_totals(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    d = await svc.create(VOL_V1, DonationIn(store_id="S1", items=items(("Produce", 3, 0.0), ("Dairy", 0, 2.5))))

    assert (d.total_boxes, d.total_kg) == (3, 2.5)
    stored = seeded.donations[d.id]
    assert stored["status"] == "pending"
    assert stored["storeName"] == "Green Grocer"
    assert stored["volunteerName"] == "Alice Moss"
    assert stored["volunteerEmail"] == "alice@example.com"
    assert stored["date"] == NOW
    assert stored["createdManually"] is False


@pytest.mark.parametrize("rows, message", [
    ((), "Add at least one donation item."),
    ((("Produce", 1, 0), ("", 1, 0)), "Item 2: choose a food type."),
    ((("Produce", -1, 3),), "Item 1: boxes and kg cannot be negative."),
    ((("Produce", 0, 0),), "Item 1: enter boxes and/or kg greater than 0."),
])
def test_item_validation(rows, message):
    with pytest.raises(ValidationFailure) as exc:
        validate_items(items(*rows))
    assert exc.value.detail == message


def test_item_coercion():
    item = DonationItem.model_validate({"foodType": " Bakery ", "boxes": "2", "kg": "abc"})
    assert (item.food_type, item.boxes, item.kg) == ("Bakery", 2, 0.0)


async def test_unknown_store(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    with pytest.raises(NotFound):
        await svc.create(VOL_V1, DonationIn(store_id="NOPE", items=items(("Produce", 1, 1))))


async def test_manual_entry(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    when = datetime(2026, 10, 1, 15, tzinfo=timezone.utc)
    d = await svc.manual_entry(STAFF, ManualDonationIn(store_id="S1", date=when, volunteer_name=" Sam ",
                                                      volunteer_email="", total_kg=4.0))
    stored = seeded.donations[d.id]
    assert stored["status"] == "completed"
    assert stored["createdManually"] is True
    assert stored["volunteerName"] == "Sam"
    assert stored["volunteerEmail"] is None
    assert stored["items"] == []

    with pytest.raises(ValidationFailure):
        await svc.manual_entry(STAFF, ManualDonationIn(store_id="S1", date=when))


async def test_edit_recomputes_totals(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    d = await svc.create(VOL_V1, DonationIn(store_id="S1", items=items(("Produce", 3, 1.0))))

    edited = await svc.edit(STAFF, d.id, DonationEdit(items=items(("Produce", 1, 1.0), ("Canned", 4, 6.0))))

    assert (edited.total_boxes, edited.total_kg) == (5, 7.0)
    assert seeded.donations[d.id]["totalKg"] == 7.0
    assert seeded.donations[d.id]["items"][1] == {"foodType": "Canned", "boxes": 4, "kg": 6.0}


async def test_review(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    d = await svc.create(VOL_V1, DonationIn(store_id="S1", items=items(("Produce", 1, 1.0))))

    approved = await svc.review(STAFF, d.id, "approved")
    assert approved.status == "approved"
    assert approved.approved_at == NOW

    with pytest.raises(NotFound):
        await svc.review(STAFF, "missing", "rejected")


async def test_recent_for_volunteer(seeded):
    svc = DonationService(seeded, clock=fixed_clock)
    await svc.create(VOL_V1, DonationIn(store_id="S1", items=items(("Produce", 1, 1.0))))
    await seeded.insert_donation({"volunteerId": "V2", "totalKg": 1})

    mine = await svc.recent_for_volunteer(VOL_V1)
    assert [d.volunteer_id for d in mine] == ["V1"]
