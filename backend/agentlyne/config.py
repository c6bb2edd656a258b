"""
Application configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from functools import lru_cache
from pathlib import Path
from typing import Optional

ROOT_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./agentlyne.db"
    DATABASE_ECHO: bool = False

    # Email (booking alerts and confirmations)
    SMTP_HOST: Optional[str] = None  # smtp.gmail.com, smtp.sendgrid.net
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_SECURE: Optional[bool] = None  # unset: implicit TLS only on 465
    FROM_EMAIL: str = "Agentlyne <no-reply@agentlyne.com>"
    SALES_EMAIL: str = "sales@agentlyne.com"
    MAIL_SUPPRESS_SEND: bool = False

    # Branding
    BRAND_NAME: str = "Agentlyne"
    SITE_DOMAIN: str = "agentlyne.com"

    # OpenAI realtime voice
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_REALTIME_MODEL: str = "gpt-4o-realtime-preview"
    OPENAI_REALTIME_VOICE: str = "alloy"
    OPENAI_REALTIME_INSTRUCTIONS: str = ""

    # Retell call platform
    RETELL_API_KEY: Optional[str] = None
    RETELL_AGENT_ID: Optional[str] = None

    # Booking Settings
    BOOKING_DEDUP_TTL_SECONDS: int = 120
    BOOKING_DEDUP_SWEEP_SECONDS: int = 30
    DEFAULT_DURATION_MINUTES: int = 30

    # Static site and vendored SDKs
    PUBLIC_DIR: Path = ROOT_DIR / "public"
    VENDOR_CACHE_DIR: Optional[Path] = None  # defaults to PUBLIC_DIR / "vendor"
    VENDOR_MIN_BYTES: int = 1024
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # Application
    ALLOWED_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"
    PORT: int = 10000
    DEBUG: bool = False

    model_config = SettingsConfigDict(
        env_file=ROOT_DIR / ".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def normalize_database_url(cls, value: str) -> str:
        # Render and Heroku still hand out the legacy scheme
        if value.startswith("postgres://"):
            return "postgresql://" + value[len("postgres://"):]
        return value

    @property
    def smtp_implicit_tls(self) -> bool:
        if self.SMTP_SECURE is not None:
            return self.SMTP_SECURE
        return self.SMTP_PORT == 465

    @property
    def vendor_cache_dir(self) -> Path:
        return self.VENDOR_CACHE_DIR or self.PUBLIC_DIR / "vendor"

    @property
    def allowed_origins(self) -> list:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)"""
    return Settings()
