"""Crawl endpoint.

Routes
------
POST /crawl    Body: {"url": "https://..."}    → markdown + metadata

Responses use the ``{success, data | error}`` envelope.  The status code
follows the error type (``fetch_failed`` → 502, ``timeout`` → 504,
``parse_failed`` / ``invalid_html`` → 422, ``network_error`` → 503,
``unknown`` → 500).  Callers over their request budget get ``429`` with a
``Retry-After`` header before any crawling happens.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, HttpUrl

from quickcrawl.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CrawlRequest(BaseModel):
    url: HttpUrl


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def client_identifier(request: Request) -> str:
    """Rate-limit key: first ``X-Forwarded-For`` hop, ``X-Real-IP``, or the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# ---------------------------------------------------------------------------
# Endpoint
# ---------------------------------------------------------------------------

@router.post("")
async def crawl(body: CrawlRequest, request: Request) -> JSONResponse:
    """Crawl ``body.url`` and return its content as markdown."""
    service = request.app.state.crawl_service
    request_id = uuid.uuid4().hex[:8]
    url = str(body.url)
    identifier = client_identifier(request)
    logger.info("[%s] Crawl request for %s from %s", request_id, url, identifier)

    try:
        result = await service.crawl_url(url, identifier=identifier)
    except RateLimitExceeded as exc:
        return JSONResponse(
            status_code=429,
            content={"error": "Rate limit exceeded"},
            headers={"Retry-After": str(exc.retry_after)},
        )

    return JSONResponse(status_code=result.status_code, content=result.to_dict())
