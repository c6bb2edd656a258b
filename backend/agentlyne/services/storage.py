"""
Booking persistence: additive schema upkeep and best-effort inserts
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import func, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import Base
from ..models.booking import Booking
from .intake import BookingForm

logger = logging.getLogger(__name__)


def ensure_schema(bind: Engine) -> List[str]:
    """
    Create the bookings table if needed and add any model column the live
    table lacks. Columns are never dropped or renamed. Returns the names of
    the columns that were added (empty when the table is already current).
    """
    table = Booking.__table__
    Base.metadata.create_all(bind=bind, tables=[table])

    existing = {column["name"] for column in inspect(bind).get_columns(table.name)}
    dialect = bind.dialect
    quote = dialect.identifier_preparer.quote
    if_not_exists = " IF NOT EXISTS" if dialect.name == "postgresql" else ""

    added = []
    with bind.begin() as conn:
        for column in table.columns:
            if column.name in existing or column.primary_key:
                continue

            ddl = (
                f"ALTER TABLE {quote(table.name)} ADD COLUMN{if_not_exists} "
                f"{quote(column.name)} {column.type.compile(dialect=dialect)}"
            )
            # SQLite refuses non-constant defaults on ALTER TABLE
            if column.server_default is not None and dialect.name != "sqlite":
                ddl += f" DEFAULT {column.server_default.arg.compile(dialect=dialect)}"

            conn.execute(text(ddl))
            added.append(column.name)

    if added:
        logger.info("bookings schema: added columns %s", ", ".join(added))
    else:
        logger.info("bookings schema: up to date")
    return added


def parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def save_booking(
    db: Session,
    form: BookingForm,
    start_utc: Optional[datetime] = None,
    end_utc: Optional[datetime] = None,
) -> Optional[int]:
    """Insert one booking row. Failures are logged and return None."""
    booking_date = parse_date(form.date)
    if form.date and booking_date is None:
        logger.warning("book db insert: unparseable date %r stored as NULL", form.date)

    booking = Booking(
        full_name=form.full_name,
        email=form.email,
        phone=form.phone,
        company=form.company,
        date=booking_date,
        time=form.time,
        timezone=form.time_zone,
        duration_min=form.duration,
        start_utc=start_utc,
        end_utc=end_utc,
        notes=form.notes,
        source=form.source,
        plan=form.plan,
        tier=form.tier,
    )

    try:
        db.add(booking)
        db.commit()
        db.refresh(booking)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            "book db insert failed for %s (%s %s): %s",
            form.email, form.date, form.time, e,
        )
        return None

    logger.info("book db insert: ok (id=%s)", booking.id)
    return booking.id


def check_connection(db: Session):
    """Current database timestamp; raises if the database is unreachable"""
    return db.execute(select(func.current_timestamp())).scalar()
