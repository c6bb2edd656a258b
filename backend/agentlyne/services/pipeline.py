"""
Booking intake pipeline: dedup -> UTC conversion -> insert -> emails
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from .dedup import BookingDedupCache
from .intake import BookingForm
from .notifications import BookingMailer
from .storage import save_booking
from .timezones import to_iso_z, zoned_to_utc

logger = logging.getLogger(__name__)


@dataclass
class BookingOutcome:
    """What actually happened for one submission"""

    duplicate: bool = False
    booking_id: Optional[int] = None
    sales_sent: bool = False
    ack_sent: bool = False
    start_utc: Optional[datetime] = None

    @property
    def stored(self) -> bool:
        return self.booking_id is not None

    @property
    def anything_done(self) -> bool:
        return self.duplicate or self.stored or self.sales_sent or self.ack_sent


async def process_booking(
    form: BookingForm,
    db: Session,
    mailer: BookingMailer,
    cache: BookingDedupCache,
) -> BookingOutcome:
    """
    Run every side effect of a validated booking.

    Each step is independent: a failed insert still sends both emails and a
    failed sales alert still sends the confirmation. A repeat of the same
    (email, date, time, zone) inside the dedup window does nothing. A
    submission where every step failed is forgotten so the user can retry.
    """
    key = cache.key_for(form)
    if cache.check_and_remember(key):
        logger.info("book duplicate ignored: %s %s %s %s", form.email, form.date, form.time, form.time_zone)
        return BookingOutcome(duplicate=True)

    try:
        outcome = await _run_side_effects(form, db, mailer)
    except Exception:
        cache.forget(key)
        raise

    if not outcome.anything_done:
        cache.forget(key)
    return outcome


def booking_window(form: BookingForm):
    """(start_utc, end_utc) for the requested slot; None where it cannot be computed"""
    if not (form.date and form.time):
        return None, None

    start_utc = zoned_to_utc(form.date, form.time, form.time_zone)
    if start_utc is None:
        logger.warning("book tz conversion failed for %s %s %r", form.date, form.time, form.time_zone)
        return None, None

    try:
        end_utc = start_utc + timedelta(minutes=form.duration)
    except OverflowError:
        logger.warning("book end time out of range: %s + %s minutes", to_iso_z(start_utc), form.duration)
        end_utc = None
    return start_utc, end_utc


async def _run_side_effects(form: BookingForm, db: Session, mailer: BookingMailer) -> BookingOutcome:
    outcome = BookingOutcome()
    start_utc, end_utc = booking_window(form)
    outcome.start_utc = start_utc

    outcome.booking_id = save_booking(db, form, start_utc, end_utc)
    outcome.sales_sent = await mailer.send_sales_alert(form, start_utc)
    outcome.ack_sent = await mailer.send_confirmation(form)

    logger.info(
        "book %s <%s> source=%s stored=%s sales=%s ack=%s",
        form.full_name, form.email, form.source,
        outcome.stored, outcome.sales_sent, outcome.ack_sent,
    )
    return outcome
