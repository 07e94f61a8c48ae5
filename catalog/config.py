# catalog/config.py
"""Environment-driven configuration.

Values are read once at import time from the process environment, after
loading an optional `.env` file from the working directory.
"""
import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))

SYNC_SOURCE_KEY = "contentful:product"
SYNC_PAGE_SIZE = int(os.getenv("SYNC_PAGE_SIZE", 100))
SYNC_CRON = os.getenv("SYNC_CRON", "0 * * * *")
SYNC_ENABLED = os.getenv("SYNC_ENABLED", "1") == "1"

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = "HS256"
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", 60))

PRODUCTS_MAX_PAGE_SIZE = 5
REPORT_DEFAULT_WINDOW_DAYS = 30


def database_url() -> str:
    url = os.getenv("POSTGRES_URL")
    if not url:
        raise ConfigError("POSTGRES_URL not set")
    # SQLAlchemy 2.x doesn't accept 'postgres://'
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


@dataclass(frozen=True)
class ContentfulSettings:
    space_id: str
    access_token: str
    environment: str = "master"
    content_type: str = "product"
    base_url: str = "https://cdn.contentful.com"
    timeout: float = 15.0
    retries: int = 3


def _env_required(name: str) -> str:
    val = os.getenv(name)
    if not val:
        raise ConfigError(f"{name} not set")
    return val


def contentful_settings() -> ContentfulSettings:
    return ContentfulSettings(
        space_id=_env_required("CONTENTFUL_SPACE_ID"),
        access_token=_env_required("CONTENTFUL_ACCESS_TOKEN"),
        environment=os.getenv("CONTENTFUL_ENVIRONMENT", "master"),
        content_type=os.getenv("CONTENTFUL_CONTENT_TYPE", "product"),
        base_url=os.getenv("CONTENTFUL_BASE_URL", "https://cdn.contentful.com"),
        timeout=int(os.getenv("HTTP_TIMEOUT_MS", 15000)) / 1000,
        retries=int(os.getenv("HTTP_RETRIES", 3)),
    )
