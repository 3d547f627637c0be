"""Periodic jobs, triggered over HTTP by an external scheduler.

``monthly_summary`` is meant for 01:00 UTC on the first of each month,
``send_pickup_reminders`` for the top of every hour.
"""
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Tuple

from foodlink.core.clock import parse_hhmm
from foodlink.models.base import oid
from foodlink.models.schedule import Schedule
from foodlink.schemas import MonthlyReportOut, RemindersOut
from foodlink.services.notifications import NotificationEmitter
from foodlink.services.reporting import group_totals, resolve_row

logger = logging.getLogger(__name__)


def previous_month(now: datetime) -> Tuple[int, int, datetime, datetime]:
    first_this = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    last_month_end = first_this - timedelta(days=1)
    start = datetime(last_month_end.year, last_month_end.month, 1, tzinfo=timezone.utc)
    return start.year, start.month, start, first_this


def summary_lines(report: MonthlyReportOut) -> list[str]:
    lines = [
        f"Month: {report.year}-{report.month:02d}",
        f"Total donations: {report.total_donations}",
        f"Total weight: {report.total_weight_kg:.1f} kg",
        f"Average weight per donation: {report.avg_weight_kg_per_donation:.1f} kg",
        "",
        "By store:",
    ]
    if not report.by_store:
        lines.append("- (no store data)")
    for name, kg in report.by_store.items():
        c = report.by_store_donation_counts.get(name, 0)
        lines.append(f"- {name}: {c} donations, {kg:.1f} kg total, avg {(kg / c if c else 0):.1f} kg")
    lines += ["", "By volunteer:"]
    if not report.by_volunteer:
        lines.append("- (no volunteer data)")
    for name, kg in report.by_volunteer.items():
        c = report.by_volunteer_donation_counts.get(name, 0)
        lines.append(f"- {name}: {c} donations, {kg:.1f} kg total, avg {(kg / c if c else 0):.1f} kg")
    return lines


async def monthly_summary(repo, now: datetime) -> MonthlyReportOut:
    year, month, start, end = previous_month(now)
    rows = [resolve_row(d) for d in await repo.list_donations(since=start, until=end)]
    total = sum(r.weight_kg for r in rows)
    by_store = group_totals(rows, "store")
    by_volunteer = group_totals(rows, "volunteer")

    report = MonthlyReportOut(
        id=oid(),
        year=year,
        month=month,
        total_donations=len(rows),
        total_weight_kg=total,
        avg_weight_kg_per_donation=(total / len(rows)) if rows else 0.0,
        by_store={g.name: g.total for g in by_store},
        by_volunteer={g.name: g.total for g in by_volunteer},
        by_store_donation_counts={g.name: g.count for g in by_store},
        by_volunteer_donation_counts={g.name: g.count for g in by_volunteer},
        summary_text="",
    )
    report.summary_text = "\n".join(summary_lines(report))

    doc = report.model_dump(by_alias=True, exclude={"id"})
    doc["_id"] = report.id
    doc["createdAt"] = now
    await repo.insert_monthly_report(doc)
    logger.info("Monthly report %s-%02d saved (%d donations)", year, month, len(rows))
    return report


def pickup_datetime(schedule: Schedule, default_start: str = "09:00") -> datetime | None:
    if schedule.pickup_date is None:
        return None
    h, m = parse_hhmm(schedule.start_time, default_start)
    return datetime.combine(schedule.pickup_date.date(), time(h, m), tzinfo=timezone.utc)


async def send_pickup_reminders(
    repo,
    emitter: NotificationEmitter,
    now: datetime,
    lead_hours: int = 24,
    default_start: str = "09:00",
) -> RemindersOut:
    """Flag and notify pickups starting between ``lead_hours`` and one hour later."""
    window_start = now + timedelta(hours=lead_hours)
    window_end = window_start + timedelta(hours=1)

    out = RemindersOut(reminded=[], notification_ids=[])
    for doc in await repo.list_schedules(statuses=["scheduled", "ready"]):
        schedule = Schedule.from_doc(doc)
        if schedule.reminder_sent:
            continue
        when = pickup_datetime(schedule, default_start)
        if when is None or not (window_start <= when < window_end):
            continue
        await repo.update_schedule(schedule.id, {"reminderSent": True, "reminderSentAt": now})
        out.reminded.append(schedule.id)
        out.notification_ids.append(await emitter.emit("pickup_reminder", schedule))
    logger.info("Pickup reminders sent for %d schedule(s)", len(out.reminded))
    return out
