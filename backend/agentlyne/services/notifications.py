"""
Booking email: internal sales alert and customer confirmation

Both messages go through one FastMail instance owned by the process.
Every send is best-effort: failures are logged and reported as False,
never raised to the request handler.
"""
import io
import logging
import uuid
from datetime import datetime, timedelta, timezone
from email.utils import parseaddr
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfoNotFoundError

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from fastapi_mail.connection import Connection
from pydantic import EmailStr, TypeAdapter, ValidationError
from starlette.datastructures import UploadFile

from ..config import Settings
from .intake import BookingForm
from .timezones import parse_local_time, resolve_zone, to_iso_z

logger = logging.getLogger(__name__)

_email_adapter = TypeAdapter(EmailStr)


def is_valid_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


# ==================== iCalendar ====================

def ics_escape(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def ics_fold(line: str, limit: int = 75) -> str:
    """Fold a content line at 75 octets (RFC 5545 3.1)"""
    encoded = line.encode("utf-8")
    if len(encoded) <= limit:
        return line

    parts = []
    current = b""
    for char in line:
        piece = char.encode("utf-8")
        # continuation lines start with a space, which counts toward the limit
        budget = limit if not parts else limit - 1
        if len(current) + len(piece) > budget:
            parts.append(current.decode("utf-8"))
            current = b""
        current += piece
    parts.append(current.decode("utf-8"))
    return "\r\n ".join(parts)


def build_ics(
    form: BookingForm,
    brand: str = "Agentlyne",
    organizer: str = "no-reply@agentlyne.com",
    domain: str = "agentlyne.com",
    uid: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[str]:
    """
    Calendar invite for the requested call.

    Start and end are written as local wall time with a TZID parameter,
    so the client does the zone conversion exactly once. A zone the tz
    database does not know gives floating times (no TZID). Returns None
    when the date or time cannot be parsed or the end is out of range.
    """
    try:
        start = datetime.combine(
            datetime.strptime(form.date, "%Y-%m-%d").date(),
            parse_local_time(form.time),
        )
        end = start + timedelta(minutes=form.duration)
    except (TypeError, ValueError, OverflowError):
        return None

    try:
        resolve_zone(form.time_zone)
        zone_param = f";TZID={form.time_zone.strip() or 'UTC'}"
    except (ValueError, ZoneInfoNotFoundError):
        logger.warning("ics: unknown time zone %r, writing floating times", form.time_zone)
        zone_param = ""
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    uid = uid or f"{uuid.uuid4()}@{domain}"

    description_lines = [
        f"Requested by {form.full_name} <{form.email}>",
        f"Phone: {form.phone or '-'}",
        f"Company: {form.company or '-'}",
    ]
    if form.notes:
        description_lines += ["", form.notes]

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{brand}//Booking//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:REQUEST",
        "BEGIN:VEVENT",
        f"UID:{uid}",
        f"DTSTAMP:{stamp.strftime('%Y%m%dT%H%M%SZ')}",
        f"DTSTART{zone_param}:{start.strftime('%Y%m%dT%H%M%S')}",
        f"DTEND{zone_param}:{end.strftime('%Y%m%dT%H%M%S')}",
        f"SUMMARY:{ics_escape(f'{brand} call with {form.full_name}')}",
        f"DESCRIPTION:{ics_escape(chr(10).join(description_lines))}",
        f"ORGANIZER;CN={ics_escape(brand)}:mailto:{organizer}",
        f"ATTENDEE;CN={ics_escape(form.full_name)};RSVP=TRUE:mailto:{form.email}",
        "STATUS:TENTATIVE",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(ics_fold(line) for line in lines) + "\r\n"


# ==================== Mail transport ====================

class BookingMailer:
    """Builds and sends booking emails through a shared FastMail instance"""

    def __init__(self, settings: Settings):
        self.settings = settings
        sender_name, sender_address = parseaddr(settings.FROM_EMAIL)
        self.sender_name = sender_name or settings.BRAND_NAME
        self.sender_address = sender_address or settings.SMTP_USER or f"no-reply@{settings.SITE_DOMAIN}"
        self.configured = bool(settings.SMTP_HOST)
        self.suppressed = settings.MAIL_SUPPRESS_SEND or not self.configured

        implicit_tls = settings.smtp_implicit_tls
        self.config = ConnectionConfig(
            MAIL_USERNAME=settings.SMTP_USER or "",
            MAIL_PASSWORD=settings.SMTP_PASS or "",
            MAIL_FROM=self.sender_address,
            MAIL_FROM_NAME=self.sender_name,
            MAIL_PORT=settings.SMTP_PORT,
            MAIL_SERVER=settings.SMTP_HOST or "localhost",
            MAIL_STARTTLS=not implicit_tls,
            MAIL_SSL_TLS=implicit_tls,
            USE_CREDENTIALS=bool(settings.SMTP_USER),
            SUPPRESS_SEND=1 if self.suppressed else 0,
        )
        self.fast_mail = FastMail(self.config)

    # -------------------- message builders --------------------

    def build_sales_message(self, form: BookingForm, start_utc: Optional[datetime] = None) -> MessageSchema:
        when = f"{form.date} {form.time} ({form.time_zone or 'tz not set'})".strip()
        body = (
            "New booking request\n"
            "\n"
            f"Name:    {form.full_name}\n"
            f"Email:   {form.email}\n"
            f"Phone:   {form.phone or '-'}\n"
            f"Company: {form.company or '-'}\n"
            "\n"
            f"Plan:    {form.plan_label or '-'}\n"
            f"When:    {when}\n"
            f"UTC:     {to_iso_z(start_utc) if start_utc else '-'}\n"
            f"Length:  {form.duration} minutes\n"
            f"Source:  {form.source}\n"
            "\n"
            "Notes:\n"
            f"{form.notes or '-'}\n"
        )
        reply_to = [form.email] if is_valid_email(form.email) else []
        return MessageSchema(
            subject=f"New booking - {form.full_name} - {form.date} {form.time}".strip(" -"),
            recipients=[self.settings.SALES_EMAIL],
            reply_to=reply_to,
            body=body,
            subtype=MessageType.plain,
        )

    def build_confirmation_message(self, form: BookingForm) -> MessageSchema:
        brand = self.settings.BRAND_NAME
        preferred = f"{form.date} {form.time} {form.time_zone}".strip()
        body = (
            f"Thanks {form.full_name}! We received your request and will get right back to you.\n"
            "\n"
            "What you submitted\n"
            f"- Email: {form.email}\n"
            f"- Phone: {form.phone or '-'}\n"
            f"- Company: {form.company or '-'}\n"
            f"- Plan: {form.plan_label or '-'}\n"
            f"- Preferred time: {preferred or '-'}\n"
            "\n"
            "If anything changes, just reply to this email.\n"
            "\n"
            f"Team {brand}\n"
        )

        attachments = []
        ics = build_ics(
            form,
            brand=brand,
            organizer=self.sender_address,
            domain=self.settings.SITE_DOMAIN,
        )
        if ics:
            attachments.append({
                "file": UploadFile(file=io.BytesIO(ics.encode("utf-8")), filename="invite.ics"),
                "mime_type": "text",
                "mime_subtype": "calendar",
            })

        subject = "We received your request"
        if form.date or form.time:
            subject += f" - {form.date} {form.time}".rstrip()
        return MessageSchema(
            subject=subject,
            recipients=[form.email],
            body=body,
            subtype=MessageType.plain,
            attachments=attachments,
        )

    # -------------------- sending --------------------

    async def _send(self, label: str, build: Callable[[], MessageSchema]) -> bool:
        try:
            message = build()
            await self.fast_mail.send_message(message)
        except Exception as e:
            logger.error("booking->%s send failed: %s", label, e)
            return False

        recipients = ", ".join(str(r) for r in message.recipients)
        if self.suppressed:
            logger.info("booking->%s suppressed (to %s): %s", label, recipients, message.subject)
        else:
            logger.info("booking->%s sent to %s", label, recipients)
        return True

    async def send_sales_alert(self, form: BookingForm, start_utc: Optional[datetime] = None) -> bool:
        return await self._send("sales", lambda: self.build_sales_message(form, start_utc))

    async def send_confirmation(self, form: BookingForm) -> bool:
        return await self._send("ack", lambda: self.build_confirmation_message(form))

    async def send_test(self, recipient: str) -> bool:
        def build() -> MessageSchema:
            return MessageSchema(
                subject=f"{self.settings.BRAND_NAME} SMTP test",
                recipients=[recipient],
                body=(
                    f"This is a test message from the {self.settings.BRAND_NAME} server.\n"
                    f"Sent at {to_iso_z(datetime.now(timezone.utc))}.\n"
                ),
                subtype=MessageType.plain,
            )

        return await self._send("test", build)

    async def verify(self) -> Tuple[bool, Optional[str]]:
        """Open and close one SMTP session (with login when configured)"""
        if not self.configured:
            return False, "SMTP_HOST not configured"
        if self.suppressed:
            return False, "mail delivery is suppressed"

        try:
            async with Connection(self.config):
                pass
        except Exception as e:
            return False, str(e)
        return True, None

    def describe(self) -> dict:
        return {
            "host": self.settings.SMTP_HOST,
            "port": self.settings.SMTP_PORT,
            "secure": self.settings.smtp_implicit_tls,
            "userPresent": bool(self.settings.SMTP_USER),
            "from": self.sender_address,
            "sales": self.settings.SALES_EMAIL,
            "suppressed": self.suppressed,
        }
