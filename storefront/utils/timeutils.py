from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def civil_today_and_tomorrow(tz_name: str, now: datetime | None = None) -> tuple[date, date]:
    now = as_utc(now) if now is not None else utcnow()
    today = now.astimezone(ZoneInfo(tz_name)).date()
    return today, today + timedelta(days=1)


def parse_deadline(value: str, tz_name: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are read in ``tz_name``.

    Raises ValueError on malformed input.
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(tz_name))
    return parsed.astimezone(timezone.utc)


def time_label(value: time) -> str:
    # 13:00 -> "1:00 PM"
    return value.strftime("%I:%M %p").lstrip("0")
