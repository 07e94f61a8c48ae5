# catalog/sync.py
"""Incremental Contentful -> database product sync.

One run:
- reads the watermark for the source (creating an empty one on first run)
- pages through Contentful entries with `sys.updatedAt >= watermark`, using
  the same lower bound for every page of the run
- transforms and upserts each entry before moving to the next one
- advances the watermark to the newest `sys.updatedAt` seen

Any error aborts the run without touching the watermark. The filter is
inclusive and the upsert idempotent, so the next run re-reads the boundary
and the failed page safely.
"""
import enum
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from . import crud, sync_state
from .config import SYNC_PAGE_SIZE, SYNC_SOURCE_KEY
from .contentful import ContentfulClient, Entry
from .errors import SyncAlreadyRunning
from .sanitize import (
    NAME_PLACEHOLDER, clean_string, normalize_currency, normalize_name,
    normalize_sku, to_decimal, to_int,
)
from .utils import ensure_utc, logger, to_iso


class SyncPhase(str, enum.Enum):
    IDLE = "idle"
    FETCHING_PAGE = "fetching_page"
    TRANSFORMING = "transforming"
    UPSERTING = "upserting"
    ADVANCING_CURSOR = "advancing_cursor"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncResult:
    source: str
    processed: int
    pages: int
    cursor: Optional[datetime]
    elapsed_ms: int


def transform_entry(entry: Entry) -> Dict[str, Any]:
    """Map a Contentful product entry to `Product` column values."""
    f = entry.fields or {}
    return {
        "contentful_id": entry.sys.id,
        "sku": normalize_sku(f.get("sku")),
        # name is required; malformed entries are kept under a placeholder
        "name": normalize_name(f.get("name")) or NAME_PLACEHOLDER,
        "category": clean_string(f.get("category")),
        "brand": clean_string(f.get("brand")),
        "model": clean_string(f.get("model")),
        "color": clean_string(f.get("color")),
        "currency": normalize_currency(f.get("currency")),
        "price": to_decimal(f.get("price")),
        "stock": to_int(f.get("stock")),
        "source_created_at": ensure_utc(entry.sys.created_at),
        "source_updated_at": ensure_utc(entry.sys.updated_at),
    }


class SyncService:
    def __init__(
        self,
        client: ContentfulClient,
        session_factory: Callable[[], Session],
        *,
        page_size: int = SYNC_PAGE_SIZE,
        source_key: str = SYNC_SOURCE_KEY,
    ):
        self.client = client
        self.session_factory = session_factory
        self.page_size = page_size
        self.source_key = source_key
        self.phase = SyncPhase.IDLE
        self.last_result: Optional[SyncResult] = None
        self.last_error: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run_once(self) -> SyncResult:
        if not self._lock.acquire(blocking=False):
            raise SyncAlreadyRunning(self.source_key)
        try:
            db = self.session_factory()
            try:
                return self._run(db)
            finally:
                db.close()
        finally:
            self._lock.release()

    def _run(self, db: Session) -> SyncResult:
        started = time.monotonic()
        skip = 0
        pages = 0
        processed = 0
        try:
            since = sync_state.get_cursor(db, self.source_key)
            logger.info(
                "Contentful sync started: source=%s since=%s page_size=%d",
                self.source_key, to_iso(since), self.page_size,
            )
            max_updated = since
            while True:
                self.phase = SyncPhase.FETCHING_PAGE
                page = self.client.list_products(
                    limit=self.page_size, skip=skip, updated_at_gte=since
                )
                if not page.items:
                    break
                pages += 1
                logger.debug(
                    "Processing page %d: skip=%d items=%d total=%d",
                    pages, skip, len(page.items), page.total,
                )
                for entry in page.items:
                    self._apply_entry(db, entry)
                    processed += 1
                    updated = ensure_utc(entry.sys.updated_at)
                    if updated and (max_updated is None or updated > max_updated):
                        max_updated = updated
                skip += len(page.items)
                if skip >= page.total:
                    break

            self.phase = SyncPhase.ADVANCING_CURSOR
            sync_state.bump_if_later(db, self.source_key, max_updated)
            cursor = sync_state.get_cursor(db, self.source_key)
        except Exception as e:
            self.phase = SyncPhase.FAILED
            self.last_error = str(e)
            logger.exception(
                "Contentful sync failed after %d ms: processed=%d skip=%d",
                _elapsed_ms(started), processed, skip,
            )
            raise

        self.phase = SyncPhase.DONE
        self.last_error = None
        self.last_result = SyncResult(
            source=self.source_key,
            processed=processed,
            pages=pages,
            cursor=cursor,
            elapsed_ms=_elapsed_ms(started),
        )
        logger.info(
            "Contentful sync completed in %d ms: processed=%d cursor=%s",
            self.last_result.elapsed_ms, processed, to_iso(cursor),
        )
        return self.last_result

    def _apply_entry(self, db: Session, entry: Entry) -> None:
        self.phase = SyncPhase.TRANSFORMING
        payload = transform_entry(entry)
        logger.debug("Processing Contentful entry %s (%s)", entry.sys.id, payload["name"])
        self.phase = SyncPhase.UPSERTING
        try:
            crud.upsert_from_contentful(db, payload)
        except Exception:
            logger.error("Failed to upsert Contentful entry %s", entry.sys.id)
            raise


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
