"""
Booking request model (demo call requested from the site)
"""
from sqlalchemy import Column, BigInteger, Integer, Text, Date, DateTime
from sqlalchemy.sql import func
from ..database import Base


class Booking(Base):
    """Demo call request. Rows are only ever appended."""

    __tablename__ = "bookings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    full_name = Column(Text)
    email = Column(Text)
    phone = Column(Text)
    company = Column(Text)
    date = Column(Date)
    time = Column(Text)  # "HH:mm" as submitted
    timezone = Column(Text)  # IANA zone, e.g. America/New_York
    duration_min = Column(Integer)
    start_utc = Column(DateTime(timezone=True))
    end_utc = Column(DateTime(timezone=True))
    notes = Column(Text)
    source = Column(Text)  # pricing, voice-agent, retell_call, website
    plan = Column(Text)
    tier = Column(Text)

    def __repr__(self):
        return f"<Booking {self.full_name} - {self.date} {self.time} ({self.source})>"
