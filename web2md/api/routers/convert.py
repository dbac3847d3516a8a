"""Full conversion endpoint with Server-Sent Events (SSE) streaming.

Routes
------
POST /api/convert    Body: {"url": "...", "html": "...", "options": {...}}

The response is a ``text/event-stream``.  Each pipeline event is one
``data:`` line holding a JSON object with a ``type`` field::

    data: {"type": "status", "status": "SCRAPING"}

    data: {"type": "log", "level": "info", "message": "..."}

    data: {"type": "result", "data": {"url": "...", "markdown": "...", ...}}

    data: {"type": "error", "message": "..."}
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from web2md import service
from web2md.api.schemas import ConvertRequest, failure, request_options

router = APIRouter()


def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


async def _convert_sse_generator(
    events: AsyncIterator[dict[str, Any]],
) -> AsyncIterator[str]:
    async for event in events:
        yield _sse(event)


@router.post("/convert")
async def convert_endpoint(body: ConvertRequest, request: Request) -> Any:
    """Run fetch, clean and convert, streaming progress as SSE."""
    if not body.url and not body.html:
        return failure(400, "Either url or html must be provided")

    events = service.convert(
        url=body.url,
        html=body.html,
        options=request_options(body.options),
        settings=request.app.state.settings,
        chain_factory=request.app.state.chain_factory,
    )
    return StreamingResponse(
        _convert_sse_generator(events),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )
