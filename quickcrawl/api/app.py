"""FastAPI application factory.

Lifespan
--------
On startup the app builds one :class:`~quickcrawl.services.CrawlService`
(with its result cache and rate limiter) and keeps it on
``request.app.state.crawl_service`` for the lifetime of the process.  Cache
and limiter state are in memory only and are lost on restart.

Routes
------
    GET  /        liveness text
    POST /crawl   crawl one URL and return markdown
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from quickcrawl.api.routers import crawl as crawl_router
from quickcrawl.config import Settings, settings as default_settings
from quickcrawl.logger import configure_logging
from quickcrawl.services import build_crawl_service

logger = logging.getLogger(__name__)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = jsonable_encoder(exc.errors())
    logger.warning("Invalid input on %s: %s", request.url.path, issues)
    return JSONResponse(status_code=422, content={"error": "Invalid input", "issues": issues})


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    cfg = app_settings or default_settings
    configure_logging(cfg.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Create the process-wide crawl service on startup."""
        app.state.settings = cfg
        app.state.crawl_service = build_crawl_service(cfg)
        logger.info("Quickcrawl ready (port %d)", cfg.port)
        yield

    app = FastAPI(
        title="Quickcrawl API",
        description=(
            "Fetch a web page and return its primary content as markdown, "
            "with page metadata."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.get("/", response_class=PlainTextResponse)
    def liveness() -> str:
        return "Quickcrawl is running"

    app.include_router(crawl_router.router, prefix="/crawl", tags=["crawl"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn quickcrawl.api.app:app --reload
app = create_app()
