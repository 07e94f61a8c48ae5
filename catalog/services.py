# catalog/services.py
"""Construction of the long-lived sync service shared by the API and scheduler."""
from typing import Optional

from .config import SYNC_PAGE_SIZE, SYNC_SOURCE_KEY, contentful_settings
from .contentful import ContentfulClient
from .db import SessionLocal
from .sync import SyncService
from .utils import logger

_sync_service: Optional[SyncService] = None


def build_sync_service() -> SyncService:
    client = ContentfulClient(contentful_settings())
    logger.info("Contentful client configured for %s", client.base_url)
    return SyncService(
        client,
        SessionLocal,
        page_size=SYNC_PAGE_SIZE,
        source_key=SYNC_SOURCE_KEY,
    )


def get_sync_service() -> SyncService:
    global _sync_service
    if _sync_service is None:
        _sync_service = build_sync_service()
    return _sync_service
