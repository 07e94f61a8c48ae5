# catalog/utils.py
"""Shared utilities: logging setup, retry helper and UTC datetime handling."""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from .config import LOG_LEVEL

T = TypeVar("T")


def get_logger(name=__name__):
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, LOG_LEVEL, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("catalog-service")


def call_with_retry(
    fn: Callable[[], T],
    *,
    retries: int,
    should_retry: Callable[[Exception], bool],
    wait_for: Callable[[Exception, float], float] = lambda exc, delay: delay,
    delay: float = 0.5,
    backoff: float = 2,
    max_delay: float = 8.0,
    logger=logger,
) -> T:
    """Call ``fn`` until it succeeds or ``retries`` extra attempts are used.

    ``should_retry`` decides whether an exception is transient. ``wait_for``
    may replace the computed backoff (e.g. with a server hint). The last
    exception is re-raised once the budget is exhausted.
    """
    attempt = 0
    mdelay = delay
    while True:
        try:
            return fn()
        except Exception as e:
            attempt += 1
            if not should_retry(e) or attempt > retries:
                raise
            wait = wait_for(e, mdelay)
            logger.warning(
                "Retryable error: %s, attempt %d/%d, retrying in %.2f sec",
                e, attempt, retries, wait,
            )
            time.sleep(wait)
            mdelay = min(mdelay * backoff, max_delay)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
