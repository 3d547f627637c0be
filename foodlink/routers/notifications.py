from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from foodlink.core.security import Actor, require_role
from foodlink.deps import get_emitter
from foodlink.models.notification import Notification
from foodlink.services.notifications import NotificationEmitter

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[Notification])
async def recent_notifications(
    limit: int = Query(50, ge=1, le=200),
    schedule_id: Optional[str] = Query(None, alias="scheduleId"),
    _staff: Actor = Depends(require_role("staff")),
    emitter: NotificationEmitter = Depends(get_emitter),
):
    return await emitter.recent(limit=limit, schedule_id=schedule_id)
