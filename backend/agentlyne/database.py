"""
Database connection (PostgreSQL in production, SQLite locally and in tests)
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import get_settings

settings = get_settings()


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """
    Engine for a DATABASE_URL.

    An in-memory SQLite database lives inside a single connection, so it
    gets one shared connection (StaticPool) instead of a fresh, empty
    database per checkout.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        options = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **options)

    # Postgres: pooled, connections pinged on checkout
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session; routes take it via Depends(get_db)"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def describe_database_url(url: str) -> dict:
    """Connection details safe to show to an operator (no password)"""
    try:
        parsed = make_url(url)
    except ArgumentError:
        return {"ok": False, "error": "invalid DATABASE_URL"}

    sslmode = parsed.query.get("sslmode")
    return {
        "ok": True,
        "driver": parsed.drivername,
        "user": parsed.username or "",
        "passPresent": bool(parsed.password),
        "host": parsed.host or "",
        "port": parsed.port,
        "db": parsed.database or "",
        "sslRequired": sslmode == "require",
    }
