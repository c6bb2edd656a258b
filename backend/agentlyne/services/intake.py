"""
Booking form normalization

The site, the pricing page and the voice agents all post slightly different
field names. Every accepted alias is declared here, in priority order.
"""
import re
from collections.abc import Mapping
from typing import Any, Iterable, List, Tuple

from pydantic import BaseModel, model_validator

from ..config import get_settings

settings = get_settings()

# Logical field -> accepted keys, first non-blank wins
FIELD_ALIASES = {
    "full_name": ("fullName", "full_name", "name"),
    "email": ("email", "mail"),
    "phone": ("phone", "tel", "telephone"),
    "company": ("company", "org", "organization"),
    "date": ("date",),
    "time": ("time",),
    "time_zone": ("timeZone", "timezone", "tz", "time_zone"),
    "notes": ("notes", "message"),
    "plan": ("plan",),
    "tier": ("tier",),
}

# Fields that keep their line breaks
MULTILINE_FIELDS = {"notes"}

# (field, name reported back to the client)
BOOKING_REQUIRED: Tuple[Tuple[str, str], ...] = (
    ("full_name", "fullName"),
    ("email", "email"),
    ("date", "date"),
    ("time", "time"),
)
LEAD_REQUIRED: Tuple[Tuple[str, str], ...] = (
    ("full_name", "name"),
    ("email", "email"),
)

DEFAULT_SOURCE = "website"


def clean(value: Any) -> str:
    """Single-line text: newlines collapsed to spaces, trimmed"""
    return re.sub(r"[\r\n]+", " ", str(value if value is not None else "")).strip()


def pick(payload: Mapping, keys: Iterable[str], default: str = "") -> str:
    """Value of the first key that is present and not blank"""
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip() != "":
            return str(value)
    return default


def parse_duration(raw: str, default: int) -> int:
    try:
        minutes = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return default
    return minutes if minutes > 0 else default


class BookingForm(BaseModel):
    """A booking request after alias resolution and cleanup"""

    full_name: str = ""
    email: str = ""
    phone: str = ""
    company: str = ""
    date: str = ""
    time: str = ""
    time_zone: str = ""
    notes: str = ""
    duration: int = settings.DEFAULT_DURATION_MINUTES
    source: str = DEFAULT_SOURCE
    plan: str = ""
    tier: str = ""

    @model_validator(mode="before")
    @classmethod
    def resolve_aliases(cls, data: Any) -> dict:
        if not isinstance(data, Mapping):
            return {}

        resolved = {}
        for field, keys in FIELD_ALIASES.items():
            raw = pick(data, keys)
            resolved[field] = raw.strip() if field in MULTILINE_FIELDS else clean(raw)

        resolved["duration"] = parse_duration(
            pick(data, ("duration",)), settings.DEFAULT_DURATION_MINUTES
        )
        resolved["source"] = clean(pick(data, ("source",))) or DEFAULT_SOURCE
        return resolved

    @classmethod
    def from_payload(cls, payload: Any) -> "BookingForm":
        """Build a form from a JSON object or form body; anything else is empty"""
        if isinstance(payload, Mapping):
            payload = dict(payload)
        return cls.model_validate(payload)

    def missing_fields(self, required: Tuple[Tuple[str, str], ...] = BOOKING_REQUIRED) -> List[str]:
        return [label for field, label in required if not getattr(self, field)]

    @property
    def plan_label(self) -> str:
        return " ".join(part for part in (self.plan, self.tier) if part)


def missing_fields_message(missing: List[str]) -> str:
    return f"Missing required fields: {', '.join(missing)}."
