from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # values read back from sqlite come without tzinfo, they were written as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


def time_until(deadline: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now or utcnow())
    seconds = int((as_utc(deadline) - now).total_seconds())
    if seconds <= 0:
        return "Expired"

    hours, rest = divmod(seconds, 3600)
    return f"{hours}h {rest // 60}m"
