# sellz_auth/config.py
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple

from dotenv import load_dotenv

# --- Load Environment Variables ---
load_dotenv()


def _env_list(name: str, default: str = "") -> Tuple[str, ...]:
    raw = os.environ.get(name, default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""

    JWT_SECRET: str
    JWT_EXPIRES_IN_HOURS: int = 24
    JWT_COOKIE_EXPIRES_IN_HOURS: int = 24
    JWT_ISSUER: str = "https://sellz-backend.com"
    JWT_AUDIENCE: str = "https://sellz.com"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # SendGrid
    SENDGRID_API_KEY: str | None = None
    MAIL_FROM_EMAIL: str | None = None

    # Profile pictures
    MEDIA_DIR: str = "./media"
    MEDIA_URL: str = "/media"
    UPLOAD_TMP_DIR: str = "./uploads/tmp"

    CORS_ORIGINS: Tuple[str, ...] = ("http://localhost:3000", "http://localhost:5173")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.environ.get("JWT_SECRET")
        if not secret:
            raise RuntimeError(
                "JWT_SECRET is not set. Please configure it in the environment."
            )
        return cls(
            JWT_SECRET=secret,
            JWT_EXPIRES_IN_HOURS=int(os.environ.get("JWT_EXPIRES_IN_HOURS", "24")),
            JWT_COOKIE_EXPIRES_IN_HOURS=int(
                os.environ.get("JWT_COOKIE_EXPIRES_IN_HOURS", "24")
            ),
            ENVIRONMENT=os.environ.get("ENVIRONMENT", "development"),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
            SENDGRID_API_KEY=os.environ.get("SENDGRID_API_KEY"),
            MAIL_FROM_EMAIL=os.environ.get("MAIL_FROM_EMAIL"),
            MEDIA_DIR=os.environ.get("MEDIA_DIR", "./media"),
            MEDIA_URL=os.environ.get("MEDIA_URL", "/media"),
            UPLOAD_TMP_DIR=os.environ.get("UPLOAD_TMP_DIR", "./uploads/tmp"),
            CORS_ORIGINS=_env_list(
                "CORS_ORIGINS", "http://localhost:3000,http://localhost:5173"
            ),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
