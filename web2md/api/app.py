"""FastAPI application factory.

Lifespan
--------
On startup the app installs the ``web2md`` log handler.  Settings and the
converter-chain factory live on ``app.state`` so tests can swap them.

Routers
-------
All endpoint groups are mounted under ``/api``:

    /api/scrape    — raw HTML retrieval
    /api/clean     — HTML cleaning
    /api/convert   — full pipeline (SSE streaming)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from web2md.config import Settings, settings as default_settings
from web2md.converter.chain import build_default_chain
from web2md.logging_config import configure_logging

from web2md.api.routers import clean as clean_router
from web2md.api.routers import convert as convert_router
from web2md.api.routers import scrape as scrape_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup."""
    configure_logging(app.state.settings)
    logger.info("web2md API started")
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    settings = settings or default_settings

    app = FastAPI(
        title="web2md API",
        description=(
            "Converts web pages or raw HTML into clean Markdown. "
            "Exposes scraping, cleaning and the full conversion pipeline "
            "via Server-Sent Events."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.chain_factory = build_default_chain

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scrape_router.router, prefix="/api", tags=["scrape"])
    app.include_router(clean_router.router, prefix="/api", tags=["clean"])
    app.include_router(convert_router.router, prefix="/api", tags=["convert"])

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Module-level instance used by uvicorn:
#   uvicorn web2md.api.app:app --reload
app = create_app()
