from fastapi import APIRouter, Depends, Query

from foodlink.core.security import Actor, require_role
from foodlink.deps import get_clock, get_repo
from foodlink.models.donation import Donation
from foodlink.schemas import DonationEdit, DonationIn, DonationList, DonationReview, ManualDonationIn
from foodlink.services.donations import DonationService

router = APIRouter(prefix="/donations", tags=["donations"])


def get_donations(repo=Depends(get_repo), clock=Depends(get_clock)) -> DonationService:
    return DonationService(repo, clock=clock)


@router.post("", response_model=Donation, status_code=201)
async def create_donation(
    body: DonationIn,
    actor: Actor = Depends(require_role("volunteer")),
    svc: DonationService = Depends(get_donations),
):
    return await svc.create(actor, body)


@router.get("/mine", response_model=DonationList)
async def my_recent_donations(
    limit: int = Query(30, ge=1, le=100),
    actor: Actor = Depends(require_role("volunteer")),
    svc: DonationService = Depends(get_donations),
):
    return {"donations": await svc.recent_for_volunteer(actor, limit=limit)}


@router.post("/manual", response_model=Donation, status_code=201)
async def manual_donation(
    body: ManualDonationIn,
    actor: Actor = Depends(require_role("staff")),
    svc: DonationService = Depends(get_donations),
):
    return await svc.manual_entry(actor, body)


@router.get("/{donation_id}", response_model=Donation)
async def get_donation(
    donation_id: str,
    _staff: Actor = Depends(require_role("staff")),
    svc: DonationService = Depends(get_donations),
):
    return await svc.get(donation_id)


@router.put("/{donation_id}", response_model=Donation)
async def edit_donation(
    donation_id: str,
    body: DonationEdit,
    actor: Actor = Depends(require_role("staff")),
    svc: DonationService = Depends(get_donations),
):
    return await svc.edit(actor, donation_id, body)


@router.patch("/{donation_id}/status", response_model=Donation)
async def review_donation(
    donation_id: str,
    body: DonationReview,
    actor: Actor = Depends(require_role("staff")),
    svc: DonationService = Depends(get_donations),
):
    return await svc.review(actor, donation_id, body.status)
