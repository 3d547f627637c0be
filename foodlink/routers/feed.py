import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from foodlink.core.errors import BackendFailure, forbidden
from foodlink.core.security import Actor, get_current_actor, require_role
from foodlink.deps import get_clock, get_repo
from foodlink.models.schedule import Schedule
from foodlink.schemas import TrackingOut
from foodlink.services.feed import AssignmentFeed, View

router = APIRouter(prefix="/feed", tags=["feed"])


def get_feed(repo=Depends(get_repo), clock=Depends(get_clock)) -> AssignmentFeed:
    return AssignmentFeed(repo, clock=clock)


def _scope(actor: Actor) -> dict:
    if actor.role == "store":
        return {"store_id": actor.id}
    if actor.role == "volunteer":
        return {"volunteer_id": actor.id}
    raise forbidden("Assignment feeds are for stores and volunteers; staff use /feed/tracking")


@router.get("/mine", response_model=List[Schedule])
async def my_assignments(
    view: View = Query("upcoming"),
    actor: Actor = Depends(get_current_actor),
    feed: AssignmentFeed = Depends(get_feed),
):
    return await feed.snapshot(view=view, **_scope(actor))


@router.get("/mine/stream")
async def stream_my_assignments(
    view: View = Query("upcoming"),
    actor: Actor = Depends(get_current_actor),
    feed: AssignmentFeed = Depends(get_feed),
):
    """Server-sent events: one ``data:`` frame with the full list per change."""
    scope = _scope(actor)

    async def events():
        snapshots = feed.subscribe(view=view, **scope)
        try:
            async for snapshot in snapshots:
                payload = [s.model_dump(mode="json", by_alias=True) for s in snapshot]
                yield f"data: {json.dumps(payload)}\n\n"
        except BackendFailure as exc:
            yield f"event: error\ndata: {json.dumps({'detail': exc.detail})}\n\n"
        finally:
            await snapshots.aclose()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.get("/tracking", response_model=TrackingOut)
async def delivery_tracking(
    store: Optional[str] = None,
    volunteer: Optional[str] = None,
    _staff: Actor = Depends(require_role("staff")),
    feed: AssignmentFeed = Depends(get_feed),
):
    return await feed.tracking(store_name=store, volunteer_name=volunteer)
