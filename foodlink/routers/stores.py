from typing import List

from fastapi import APIRouter, Depends

from foodlink.core.security import Actor, require_role
from foodlink.deps import get_clock, get_repo
from foodlink.models.people import Store
from foodlink.schemas import StoreDecision, UnavailableDatesIn
from foodlink.services.stores import StoreService

router = APIRouter(prefix="/stores", tags=["stores"])


def get_stores(repo=Depends(get_repo), clock=Depends(get_clock)) -> StoreService:
    return StoreService(repo, clock=clock)


@router.get("", response_model=List[Store])
async def list_stores(
    _staff: Actor = Depends(require_role("staff")),
    svc: StoreService = Depends(get_stores),
):
    return await svc.list()


@router.post("/{store_id}/decision", response_model=Store)
async def decide_store(
    store_id: str,
    body: StoreDecision,
    actor: Actor = Depends(require_role("staff")),
    svc: StoreService = Depends(get_stores),
):
    return await svc.decide(actor, store_id, body.approve)


@router.put("/me/unavailable-dates", response_model=Store)
async def set_unavailable_dates(
    body: UnavailableDatesIn,
    actor: Actor = Depends(require_role("store")),
    svc: StoreService = Depends(get_stores),
):
    return await svc.set_unavailable_dates(actor, body.dates)
