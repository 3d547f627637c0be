from datetime import date, datetime, time, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

# Far-future / epoch sentinels let undated schedules sort without comparing None
FAR_FUTURE = datetime(2100, 1, 1, tzinfo=timezone.utc)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value) -> Optional[datetime]:
    """Coerce stored date values (datetime, date, ISO string) to aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def day_start(d: date) -> datetime:
    return datetime.combine(d, time(0, 0, 0), tzinfo=timezone.utc)


def day_end(d: date) -> datetime:
    return datetime.combine(d, time(23, 59, 59), tzinfo=timezone.utc)


def parse_hhmm(text, default: str = "09:00") -> tuple[int, int]:
    """Parse ``HH:MM``; unparseable parts fall back to the default's parts."""
    dh, dm = (int(x) for x in default.split(":"))
    parts = str(text or default).split(":")
    try:
        h = int(parts[0])
    except (ValueError, IndexError):
        h = dh
    try:
        m = int(parts[1])
    except (ValueError, IndexError):
        m = 0
    return h, m
