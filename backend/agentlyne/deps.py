"""
Process-wide service instances and the FastAPI dependencies that hand them out

The process owns exactly one mailer, one dedup cache, one asset proxy and one
vendor client for its lifetime. Tests swap them via app.dependency_overrides.
"""
import json
from typing import Any

from fastapi import Request

from .config import get_settings
from .services.dedup import BookingDedupCache
from .services.notifications import BookingMailer
from .services.vendors import VendorAssetProxy, VoiceSessionClient

settings = get_settings()

mailer = BookingMailer(settings)
dedup_cache = BookingDedupCache(ttl_seconds=settings.BOOKING_DEDUP_TTL_SECONDS)
asset_proxy = VendorAssetProxy(
    cache_dir=settings.vendor_cache_dir,
    min_bytes=settings.VENDOR_MIN_BYTES,
    timeout=settings.HTTP_TIMEOUT_SECONDS,
)
voice_client = VoiceSessionClient(settings)


def get_mailer() -> BookingMailer:
    return mailer


def get_dedup_cache() -> BookingDedupCache:
    return dedup_cache


def get_asset_proxy() -> VendorAssetProxy:
    return asset_proxy


def get_voice_client() -> VoiceSessionClient:
    return voice_client


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> Any:
    """Request body as JSON or form data; an unreadable body is an empty dict"""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        return await request.form()

    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError:
        return {}
