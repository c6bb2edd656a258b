"""
API router for demo bookings
"""
from collections.abc import Mapping
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_dedup_cache, get_mailer, read_payload
from ..errors import ApiError
from ..services.dedup import BookingDedupCache
from ..services.intake import LEAD_REQUIRED, BookingForm, missing_fields_message
from ..services.notifications import BookingMailer
from ..services.pipeline import process_booking
from ..services.schedule import suggest_slots

router = APIRouter(prefix="/api", tags=["bookings"])

RETELL_SOURCE = "retell_call"


@router.get("/slots")
async def get_slots(date_param: Optional[str] = Query(None, alias="date")):
    """Suggested demo slots for a day (YYYY-MM-DD), as UTC timestamps"""
    target = None
    if date_param:
        try:
            target = date.fromisoformat(date_param.strip())
        except ValueError:
            raise ApiError(400, "Invalid date, expected YYYY-MM-DD.")
    return {"slots": suggest_slots(target)}


@router.post("/book")
async def create_booking(
    request: Request,
    db: Session = Depends(get_db),
    mailer: BookingMailer = Depends(get_mailer),
    cache: BookingDedupCache = Depends(get_dedup_cache),
):
    """Booking form submission from the site or the voice agent"""
    form = BookingForm.from_payload(await read_payload(request))

    missing = form.missing_fields()
    if missing:
        raise ApiError(400, missing_fields_message(missing))

    outcome = await process_booking(form, db, mailer, cache)
    if not outcome.anything_done:
        raise ApiError(500, "Server error")

    response = {"ok": True}
    if outcome.duplicate:
        response["duplicate"] = True
    return response


@router.post("/retell/book_demo")
async def retell_book_demo(
    request: Request,
    db: Session = Depends(get_db),
    mailer: BookingMailer = Depends(get_mailer),
    cache: BookingDedupCache = Depends(get_dedup_cache),
):
    """Lead captured by the phone agent (custom function call)"""
    payload = await read_payload(request)
    # function calls arrive as {"name": ..., "call": {...}, "args": {...}}
    if isinstance(payload, Mapping) and isinstance(payload.get("args"), Mapping):
        payload = payload["args"]

    form = BookingForm.from_payload(payload).model_copy(update={"source": RETELL_SOURCE})

    missing = form.missing_fields(LEAD_REQUIRED)
    if missing:
        raise ApiError(400, missing_fields_message(missing))

    outcome = await process_booking(form, db, mailer, cache)
    if not outcome.anything_done:
        raise ApiError(500, "Server error")

    return {
        "ok": True,
        "result": (
            f"Thanks {form.full_name}, your demo request is booked. "
            f"We sent a confirmation to {form.email} and will follow up shortly."
        ),
    }
