from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, StreamingResponse

from foodlink.core.config import settings
from foodlink.core.security import require_role
from foodlink.deps import get_repo
from foodlink.schemas import DonationPage, DonationReport
from foodlink.services.charts import plot_group_totals_png
from foodlink.services.reporting import DonationFilter, DonationReportSession, fetch_page

router = APIRouter(
    prefix="/reports",
    tags=["reports"],
    dependencies=[Depends(require_role("staff"))],
)


def page_size_param(page_size: Optional[int] = Query(None, alias="pageSize", ge=1)) -> int:
    return min(page_size or settings.report_page_size, settings.max_page_size)


def report_filter(
    volunteer: str = "",
    store: str = "",
    food_type: str = Query("", alias="foodType"),
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
) -> DonationFilter:
    return DonationFilter(
        volunteer=volunteer, store=store, food_type=food_type,
        date_from=date_from, date_to=date_to,
    )


async def loaded_session(
    pages: int = Query(1, ge=1, le=20),
    cursor: Optional[str] = None,
    page_size: int = Depends(page_size_param),
    repo=Depends(get_repo),
) -> DonationReportSession:
    """Page in ``pages`` pages starting after ``cursor`` (or from the newest)."""
    session = DonationReportSession(repo, page_size=page_size, cursor=cursor)
    await session.load_pages(pages)
    return session


@router.get("/donations/page", response_model=DonationPage)
async def donations_page(
    cursor: Optional[str] = None,
    page_size: int = Depends(page_size_param),
    repo=Depends(get_repo),
):
    return await fetch_page(repo, page_size, cursor)


@router.get("/donations", response_model=DonationReport)
async def donation_report(
    flt: DonationFilter = Depends(report_filter),
    session: DonationReportSession = Depends(loaded_session),
):
    return session.report(flt)


@router.get("/donations.csv", response_class=PlainTextResponse)
async def donation_csv(
    flt: DonationFilter = Depends(report_filter),
    session: DonationReportSession = Depends(loaded_session),
):
    return PlainTextResponse(
        session.export_csv(flt),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="donations.csv"'},
    )


@router.get("/donations/{group}.png")
async def donation_chart(
    group: Literal["store", "volunteer"],
    flt: DonationFilter = Depends(report_filter),
    session: DonationReportSession = Depends(loaded_session),
):
    report = session.report(flt)
    groups = report.by_store if group == "store" else report.by_volunteer
    buf = plot_group_totals_png(groups, f"Donated kg by {group}")
    return StreamingResponse(buf, media_type="image/png")
