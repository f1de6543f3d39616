"""UTC helpers. SQLite hands back naive datetimes; everything stored is UTC."""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from artist_dispatch.core.constants import DISPLAY_TIMEZONE


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def isoformat(dt: datetime | None) -> str | None:
    dt = ensure_utc(dt)
    return dt.isoformat() if dt else None


def format_display(dt: datetime | None, fmt: str = "%d/%m/%Y %H:%M") -> str | None:
    """Format a stored UTC timestamp in the display time zone (Europe/Lisbon)."""
    dt = ensure_utc(dt)
    if dt is None:
        return None
    return dt.astimezone(ZoneInfo(DISPLAY_TIMEZONE)).strftime(fmt)


def format_remaining(delta: timedelta) -> str:
    """'5h 12m' style; '0m' once elapsed."""
    total_minutes = max(0, int(delta.total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def local_today(now: datetime | None = None) -> date:
    """Calendar date in the display time zone; board dates are local dates."""
    return ensure_utc(now or utcnow()).astimezone(ZoneInfo(DISPLAY_TIMEZONE)).date()
