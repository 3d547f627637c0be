from fastapi import APIRouter, Depends, Response

from foodlink.core.security import Actor, get_current_actor
from foodlink.deps import get_lifecycle
from foodlink.models.schedule import Schedule
from foodlink.schemas import ScheduleCreate, ScheduleCreated, ScheduleEdit, TransitionOut
from foodlink.services.lifecycle import ScheduleLifecycle

router = APIRouter(prefix="/schedules", tags=["schedules"])

# Role checks live in ScheduleLifecycle so every caller gets them, not just HTTP.


@router.post("", response_model=ScheduleCreated, status_code=201)
async def create_schedule(
    body: ScheduleCreate,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.create_schedule(actor, body)


@router.patch("/{schedule_id}", response_model=Schedule)
async def edit_schedule(
    schedule_id: str,
    body: ScheduleEdit,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.edit_schedule(actor, schedule_id, body)


@router.delete("/{schedule_id}", status_code=204)
async def delete_schedule(
    schedule_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    await lifecycle.delete_schedule(actor, schedule_id)
    return Response(status_code=204)


@router.post("/{schedule_id}/cancel", response_model=Schedule)
async def cancel_schedule(
    schedule_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.cancel_schedule(actor, schedule_id)


@router.post("/{schedule_id}/ready", response_model=TransitionOut)
async def confirm_readiness(
    schedule_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.confirm_readiness(actor, schedule_id)


@router.post("/{schedule_id}/pickup", response_model=TransitionOut)
async def confirm_pickup(
    schedule_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.confirm_pickup(actor, schedule_id)


@router.post("/{schedule_id}/delivery", response_model=TransitionOut)
async def confirm_delivery(
    schedule_id: str,
    actor: Actor = Depends(get_current_actor),
    lifecycle: ScheduleLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.confirm_delivery(actor, schedule_id)
