"""Fetch stage: ``Initial`` → ``Fetched``.

Uses ``httpx.AsyncClient`` with a bounded per-attempt timeout.  Transient
transport failures (timeouts, connection errors, broken protocol exchanges)
are retried with exponential backoff via ``tenacity``; a non-2xx response is
final and raises :class:`~quickcrawl.errors.FetchFailed` straight away.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from quickcrawl.crawl.constants import FETCH_HTML, USER_AGENT
from quickcrawl.crawl.guards import expect
from quickcrawl.crawl.models import Fetched, Initial, advance
from quickcrawl.errors import CrawlTimeout, FetchFailed, NetworkError
from quickcrawl.workflow.types import Stage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_RETRIES = 2

_DEFAULT_HEADERS = {"User-Agent": USER_AGENT}

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)

# Failures worth another attempt. Redirect loops, decoding errors and bad
# schemes are final.
_TRANSIENT = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
    asyncio.TimeoutError,
)


def _extract_title(html: str) -> Optional[str]:
    """Return the text of the first ``<title>`` tag, or ``None``.

    A cheap regex scan of the raw response; the metadata stage does the real
    parse and falls back to this value.
    """
    match = _TITLE_RE.search(html)
    if match:
        return match.group(1).strip() or None
    return None


def _retry_logger(url: str):
    """Return a tenacity ``before_sleep`` hook that logs failed attempts for *url*."""

    def log(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Fetch attempt %d for %s failed (%s), retrying",
            retry_state.attempt_number,
            url,
            exc.__class__.__name__ if exc else "unknown",
        )

    return log


def make_fetch_stage(
    timeout: float = DEFAULT_TIMEOUT,
    retries: int = DEFAULT_RETRIES,
    wait: Optional[wait_base] = None,
    headers: Optional[dict[str, str]] = None,
) -> Stage:
    """Return the ``fetch_html`` stage.

    Args:
        timeout: Per-attempt timeout in seconds.
        retries: Extra attempts after the first on transient failures.
        wait: tenacity wait strategy between attempts (exponential backoff
            by default; tests pass ``wait_none()``).
        headers: Request headers, defaults to the Quickcrawl User-Agent.
    """
    retry_wait = wait if wait is not None else wait_exponential(multiplier=0.5, max=4)
    request_headers = headers or _DEFAULT_HEADERS

    async def _attempt(url: str, client: httpx.AsyncClient) -> httpx.Response:
        # httpx times connect/read/write separately; bound the attempt as a whole.
        return await asyncio.wait_for(client.get(url), timeout)

    async def _get(url: str, client: httpx.AsyncClient) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(retries + 1),
            wait=retry_wait,
            retry=retry_if_exception_type(_TRANSIENT),
            before_sleep=_retry_logger(url),
            reraise=True,
        )
        return await retrying(_attempt, url, client)

    async def fetch_html(ctx: Initial) -> Fetched:
        ctx = expect(ctx, Initial)
        logger.debug("Starting HTML fetch for %s", ctx.url)
        started = time.monotonic()

        try:
            async with httpx.AsyncClient(
                headers=request_headers,
                timeout=timeout,
                follow_redirects=True,
            ) as client:
                response = await _get(ctx.url, client)
        except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
            raise CrawlTimeout(round(timeout * 1000), stage=FETCH_HTML) from exc
        except httpx.RequestError as exc:
            raise NetworkError(
                str(exc) or exc.__class__.__name__,
                cause=exc.__class__.__name__,
            ) from exc

        if not response.is_success:
            logger.error(
                "Fetch of %s failed with status %d %s",
                ctx.url, response.status_code, response.reason_phrase,
            )
            raise FetchFailed(response.status_code, response.reason_phrase, ctx.url)

        html = response.text
        logger.info(
            "Fetched %s (%d chars) in %.0fms",
            ctx.url, len(html), (time.monotonic() - started) * 1000,
        )
        return advance(ctx, Fetched, html=html, title=_extract_title(html))

    return Stage(
        name=FETCH_HTML,
        input_type=Initial,
        output_type=Fetched,
        run=fetch_html,
        description="Download the page HTML.",
    )
