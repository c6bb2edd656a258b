"""
Demo call slot suggestions
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional

from .timezones import to_iso_z

# Minutes after UTC midnight: 10:00, 13:00, 15:30
DEMO_SLOT_MINUTES = (10 * 60, 13 * 60, 15 * 60 + 30)


def suggest_slots(target_date: Optional[date] = None) -> List[str]:
    """
    Three fixed demo slots for a date, as UTC ISO timestamps
    Without a date the current UTC day is used
    """
    if target_date is None:
        target_date = datetime.now(timezone.utc).date()

    midnight = datetime.combine(target_date, time(0, 0), tzinfo=timezone.utc)
    return [to_iso_z(midnight + timedelta(minutes=minutes)) for minutes in DEMO_SLOT_MINUTES]
