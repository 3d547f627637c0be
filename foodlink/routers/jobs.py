from fastapi import APIRouter, Depends

from foodlink.core.config import settings
from foodlink.core.security import require_role
from foodlink.deps import get_clock, get_emitter, get_repo
from foodlink.schemas import MonthlyReportOut, RemindersOut
from foodlink.services.jobs import monthly_summary, send_pickup_reminders

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_role("staff"))])


@router.post("/monthly-summary", response_model=MonthlyReportOut)
async def run_monthly_summary(repo=Depends(get_repo), clock=Depends(get_clock)):
    return await monthly_summary(repo, clock())


@router.post("/pickup-reminders", response_model=RemindersOut)
async def run_pickup_reminders(repo=Depends(get_repo), emitter=Depends(get_emitter), clock=Depends(get_clock)):
    return await send_pickup_reminders(
        repo,
        emitter,
        clock(),
        lead_hours=settings.reminder_lead_hours,
        default_start=settings.default_start_time,
    )
