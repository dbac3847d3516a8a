"""HTML cleaning endpoint.

Routes
------
POST /api/clean    Body: {"html": "...", "url": "...", "options": {...}}

Either ``html`` or ``url`` is required; the URL wins when both are sent.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request

from web2md import service
from web2md.api.schemas import CleanRequest, failure, request_options, success
from web2md.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clean")
async def clean_endpoint(body: CleanRequest, request: Request) -> Any:
    if not body.html and not body.url:
        return failure(400, "Either url or html must be provided")

    try:
        options = request_options(body.options)
        result = await service.clean(
            html=body.html,
            url=body.url,
            options=options,
            settings=request.app.state.settings,
        )
    except ValidationError as exc:
        return failure(400, str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Clean failed url=%s", body.url)
        return failure(500, str(exc) or "Unknown error occurred")
    return success(result.to_dict())
