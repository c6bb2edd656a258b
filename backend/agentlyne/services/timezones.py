"""
Local wall clock -> UTC conversion for booking requests
"""
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

TIME_FORMATS = ("%H:%M", "%H:%M:%S")


def parse_local_time(value: str):
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    raise ValueError(f"unrecognized time: {value!r}")


def resolve_zone(tz_name: Optional[str]):
    """ZoneInfo for an IANA name; blank means UTC"""
    if not tz_name or not tz_name.strip():
        return timezone.utc
    return ZoneInfo(tz_name.strip())


def zoned_to_utc(date_str: str, time_str: str, tz_name: Optional[str]) -> Optional[datetime]:
    """
    Convert a local date ("YYYY-MM-DD") and time ("HH:mm") in an IANA zone
    to an aware UTC datetime.

    The offset comes from the zone database for the local instant itself
    (fold=0): an ambiguous fall-back time resolves to the first occurrence,
    a time inside a spring-forward gap moves forward by the gap.

    Returns None for anything unparseable; callers then skip the UTC columns.
    """
    try:
        local_date = date.fromisoformat(date_str.strip())
        local_time = parse_local_time(time_str)
        zone = resolve_zone(tz_name)
        local = datetime.combine(local_date, local_time).replace(tzinfo=zone)
        # the first and last days of the calendar can fall outside it in UTC
        return local.astimezone(timezone.utc)
    except (ValueError, TypeError, AttributeError, OverflowError, ZoneInfoNotFoundError):
        return None


def to_iso_z(moment: datetime) -> str:
    """ISO-8601 UTC with milliseconds and a Z suffix: 2024-07-04T18:30:00.000Z"""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S") + f".{moment.microsecond // 1000:03d}Z"


def zoned_to_utc_iso(date_str: str, time_str: str, tz_name: Optional[str]) -> Optional[str]:
    moment = zoned_to_utc(date_str, time_str, tz_name)
    return to_iso_z(moment) if moment else None
