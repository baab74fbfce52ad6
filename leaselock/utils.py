from datetime import datetime, timedelta, timezone
from dateutil import tz

def utc_now() -> datetime:
    # Millisecond precision keeps values comparable with TIMESTAMP(3) columns
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)

def as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def resolve_tz(name: str | None):
    if not name:
        return None
    return tz.gettz(name)

def encode_timestamp(instant: datetime, time_zone: str | None = None) -> datetime:
    """Value to bind for a lock timestamp.

    Without a zone the UTC wall clock is bound as a naive datetime. With a zone
    the instant is bound as an aware datetime in that zone, so drivers do not
    fall back to the process default zone.
    """
    instant = as_utc(instant)
    if not time_zone:
        return instant.replace(tzinfo=None)
    tzinfo = resolve_tz(time_zone)
    if tzinfo is None:
        raise ValueError(f"unknown time zone {time_zone!r}")
    return instant.astimezone(tzinfo)

def to_local_datetime_iso(dt: datetime, local_tz: str | None) -> str:
    tzinfo = resolve_tz(local_tz) or timezone.utc
    return as_utc(dt).astimezone(tzinfo).isoformat()

def seconds(value: float | int | timedelta) -> timedelta:
    if isinstance(value, timedelta):
        return value
    return timedelta(seconds=float(value))
