# catalog/contentful.py
"""Client for the Contentful Content Delivery API.

Only the `/entries` listing is used: product entries filtered by
`sys.updatedAt >= watermark` and ordered ascending by update time, so an
incremental sync can walk them page by page.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field

from .config import ContentfulSettings
from .utils import call_with_retry, logger, to_iso

RETRY_BASE_DELAY = 0.5
RETRY_MAX_DELAY = 8.0


class EntrySys(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: Optional[str] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class Entry(BaseModel):
    sys: EntrySys
    fields: Optional[Dict[str, Any]] = None


class EntryPage(BaseModel):
    total: int = 0
    skip: int = 0
    limit: int = 0
    items: List[Entry] = Field(default_factory=list)


def is_retriable(exc: Exception) -> bool:
    """429, 5xx and failures that never got a status code are transient."""
    if not isinstance(exc, requests.RequestException):
        return False
    response = getattr(exc, "response", None)
    if response is None:
        return True
    status = response.status_code
    return status == 429 or 500 <= status < 600


def retry_after_or(exc: Exception, delay: float) -> float:
    response = getattr(exc, "response", None)
    if response is None:
        return delay
    try:
        return max(float(response.headers.get("Retry-After")), 0.0)
    except (TypeError, ValueError):
        return delay


class ContentfulClient:
    def __init__(self, settings: ContentfulSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.base_url = (
            f"{settings.base_url.rstrip('/')}/spaces/{settings.space_id}"
            f"/environments/{settings.environment}"
        )
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {settings.access_token}"})

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        response = self.session.get(
            f"{self.base_url}{path}", params=params, timeout=self.settings.timeout
        )
        response.raise_for_status()
        return response

    def list_products(
        self,
        limit: int,
        skip: int,
        updated_at_gte: Union[datetime, str, None] = None,
    ) -> EntryPage:
        params: Dict[str, Any] = {
            "content_type": self.settings.content_type,
            "limit": limit,
            "skip": skip,
            # ascending so an interrupted run can resume from the watermark
            "order": "sys.updatedAt",
        }
        if updated_at_gte:
            params["sys.updatedAt[gte]"] = (
                to_iso(updated_at_gte) if isinstance(updated_at_gte, datetime) else updated_at_gte
            )
        logger.debug("GET /entries %s", params)
        response = call_with_retry(
            lambda: self._get("/entries", params),
            retries=self.settings.retries,
            should_retry=is_retriable,
            wait_for=retry_after_or,
            delay=RETRY_BASE_DELAY,
            max_delay=RETRY_MAX_DELAY,
        )
        return EntryPage.model_validate(response.json())
