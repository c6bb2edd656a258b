"""
Main FastAPI application
Agentlyne marketing site: static pages, demo bookings, voice vendor proxies
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings
from .database import engine
from .deps import dedup_cache, mailer
from .errors import ApiError
from .routes.bookings import router as bookings_router
from .routes.diagnostics import router as diagnostics_router
from .routes.vendor_assets import router as vendor_assets_router
from .routes.voice import router as voice_router
from .services.storage import ensure_schema
from .services.vendors import VendorError, VendorNotConfigured

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ==================== CACHE HEADERS ====================

VENDORED_PREFIXES = ("/vendor/", "/sdk/")


def cache_control_for(path: str) -> str:
    if path.startswith(VENDORED_PREFIXES):
        return "public, max-age=86400"

    last_segment = path.rsplit("/", 1)[-1]
    # pages: "/", "/pricing/", "*.html"
    if not last_segment or last_segment.endswith(".html") or "." not in last_segment:
        return "no-cache"
    return "public, max-age=3600"


class CacheHeadersMiddleware(BaseHTTPMiddleware):
    """Cache-Control for static files; API responses are left alone"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if path.startswith("/api/") or "cache-control" in response.headers:
            return response
        if response.status_code not in (200, 304):
            return response

        response.headers["Cache-Control"] = cache_control_for(path)
        return response


# ==================== LIFESPAN ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_schema(engine)
    except SQLAlchemyError as e:
        logger.error("book db ensure failed: %s", e)

    ready, error = await mailer.verify()
    if ready:
        logger.info("SMTP ready")
    else:
        logger.warning("SMTP not ready: %s", error)

    sweeper = asyncio.create_task(dedup_cache.run_sweeper(settings.BOOKING_DEDUP_SWEEP_SECONDS))
    app.state.dedup_sweeper = sweeper
    try:
        yield
    finally:
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        engine.dispose()


# FastAPI application
app = FastAPI(
    title="Agentlyne API",
    description="Marketing site backend: bookings and voice agent helpers",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CacheHeadersMiddleware)


# ==================== ERROR HANDLERS ====================

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.message})


@app.exception_handler(VendorNotConfigured)
async def vendor_not_configured_handler(request: Request, exc: VendorNotConfigured):
    logger.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})


@app.exception_handler(VendorError)
async def vendor_error_handler(request: Request, exc: VendorError):
    return JSONResponse(
        status_code=502,
        content={"ok": False, "error": exc.detail, "status": exc.status_code},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"ok": False, "error": "Server error"})


# Routers
app.include_router(diagnostics_router)
app.include_router(bookings_router)
app.include_router(voice_router)
app.include_router(vendor_assets_router)

# Static site (mounted last so API routes win)
if settings.PUBLIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(settings.PUBLIC_DIR), html=True), name="site")
else:
    logger.warning("PUBLIC_DIR %s does not exist, static site disabled", settings.PUBLIC_DIR)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("agentlyne.main:app", host="0.0.0.0", port=settings.PORT)
