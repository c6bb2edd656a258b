"""
Operational endpoints: health, database, SMTP and static file checks
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import describe_database_url, get_db
from ..deps import get_asset_proxy, get_mailer
from ..errors import ApiError
from ..services.notifications import BookingMailer
from ..services.storage import check_connection, ensure_schema
from ..services.vendors import VendorAssetProxy

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["diagnostics"])


@router.get("/health")
async def health_check():
    return {"ok": True}


@router.get("/db-info")
async def db_info(settings: Settings = Depends(get_settings)):
    """Sanitized connection details (never the password)"""
    return describe_database_url(settings.DATABASE_URL)


@router.get("/db-test")
async def db_test(db: Session = Depends(get_db)):
    try:
        now = check_connection(db)
    except SQLAlchemyError as e:
        logger.error("db test failed: %s", e)
        raise ApiError(500, "Database unreachable")
    return {"ok": True, "now": str(now)}


@router.post("/db-migrate")
async def db_migrate(db: Session = Depends(get_db)):
    """Re-run the additive schema upkeep for the bookings table"""
    try:
        added = ensure_schema(db.get_bind())
    except SQLAlchemyError as e:
        logger.error("db migrate failed: %s", e)
        raise ApiError(500, "Migration failed")
    return {"ok": True, "added": added}


@router.get("/email-verify")
async def email_verify(mailer: BookingMailer = Depends(get_mailer)):
    ready, error = await mailer.verify()
    response = {"ok": ready, "smtp": mailer.describe()}
    if error:
        response["error"] = error
    return response


@router.get("/email-test")
async def email_test(
    to: Optional[str] = Query(None),
    mailer: BookingMailer = Depends(get_mailer),
):
    """Send a test message (defaults to the sales inbox)"""
    recipient = (to or "").strip() or mailer.settings.SALES_EMAIL
    sent = await mailer.send_test(recipient)
    if not sent:
        raise ApiError(500, "Test email failed")
    return {"ok": True, "to": recipient, "suppressed": mailer.suppressed}


@router.get("/static-check")
async def static_check(
    settings: Settings = Depends(get_settings),
    proxy: VendorAssetProxy = Depends(get_asset_proxy),
):
    """What the static site and the vendor cache look like on disk"""
    public_dir = settings.PUBLIC_DIR
    index = public_dir / "index.html"
    return {
        "ok": index.is_file(),
        "publicDir": str(public_dir),
        "publicDirExists": public_dir.is_dir(),
        "index": {
            "exists": index.is_file(),
            "bytes": index.stat().st_size if index.is_file() else 0,
        },
        "vendor": proxy.status(),
    }
