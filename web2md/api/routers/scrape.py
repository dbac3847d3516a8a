"""Raw HTML retrieval endpoint.

Routes
------
POST /api/scrape    Body: {"url": "...", "options": {...}}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from web2md import service
from web2md.api.schemas import ScrapeRequest, failure, request_options, success
from web2md.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/scrape")
async def scrape_endpoint(body: ScrapeRequest, request: Request) -> Any:
    """Fetch a page and return its raw HTML, title and fetch source."""
    if not body.url:
        return failure(400, "URL is required")

    try:
        options = request_options(body.options)
        result = await service.scrape(
            body.url, options, settings=request.app.state.settings
        )
    except ValidationError as exc:
        return failure(400, str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Scrape failed url=%s", body.url)
        return failure(500, str(exc) or "Unknown error occurred")
    return success(result.to_dict())
