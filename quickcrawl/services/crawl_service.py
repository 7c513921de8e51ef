"""Crawl orchestration: rate limiter → cache → workflow.

``CrawlService.crawl_url`` is the single request-scoped entry point.  It

    1. refuses callers that are over their request budget,
    2. answers from the result cache when it can,
    3. otherwise runs the crawl workflow under an overall deadline and caches
       the result if, and only if, every stage succeeded.

It is also the one place that turns pipeline failures into the
``{success, data | error}`` envelope; unexpected exceptions become ``unknown``
errors instead of escaping to the caller.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Optional

from quickcrawl.cache import TTLCache
from quickcrawl.config import Settings
from quickcrawl.crawl import create_crawl_workflow, make_fetch_stage
from quickcrawl.crawl.guards import is_completed
from quickcrawl.crawl.models import CrawlResult, CrawlResultData, Failed, Initial, to_failed
from quickcrawl.errors import CrawlError, RateLimitExceeded, UnknownError, to_crawl_error
from quickcrawl.rate_limiter import RateLimiter
from quickcrawl.workflow import Stage, Workflow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30_000


class CrawlService:
    """Serve crawl requests through the limiter, the cache and the workflow."""

    def __init__(
        self,
        workflow: Workflow,
        cache: TTLCache[str, CrawlResultData],
        rate_limiter: RateLimiter,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_requests: int = 10,
        window_ms: int = 60_000,
    ) -> None:
        self.workflow = workflow
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.timeout_ms = timeout_ms
        self.max_requests = max_requests
        self.window_ms = window_ms

    @property
    def retry_after(self) -> int:
        """Seconds a refused caller is told to wait."""
        return math.ceil(self.window_ms / 1000)

    def check_admission(self, identifier: str) -> None:
        """Raise :class:`RateLimitExceeded` if *identifier* is over its budget."""
        if not self.rate_limiter.check_limit(identifier, self.max_requests, self.window_ms):
            logger.warning(
                "Rate limit exceeded for %s (%d per %dms)",
                identifier, self.max_requests, self.window_ms,
            )
            raise RateLimitExceeded(identifier, self.retry_after)

    async def crawl_url(self, url: str, identifier: str = "unknown") -> CrawlResult:
        """Crawl *url* on behalf of *identifier*.

        Raises:
            RateLimitExceeded: The caller is over its request budget; no other
                work was done.
        """
        self.check_admission(identifier)

        cached = self.cache.get(url)
        if cached is not None:
            logger.info("Cache hit for %s", url)
            return CrawlResult.ok(cached)
        logger.debug("Cache miss for %s", url)

        started = time.monotonic()
        initial = Initial(url=url)
        try:
            ctx = await self.workflow.run(initial, timeout_ms=self.timeout_ms)
        except CrawlError as exc:
            return self._failure(to_failed(initial, exc))
        except Exception as exc:
            logger.exception("Unexpected error while crawling %s", url)
            return self._failure(to_failed(initial, to_crawl_error(exc)))

        if not is_completed(ctx):
            logger.error("Workflow for %s ended at stage %r", url, getattr(ctx, "stage", "?"))
            return self._failure(to_failed(initial, UnknownError("Workflow incomplete")))

        data = CrawlResultData.from_completed(ctx)
        self.cache.set(url, data)
        logger.info(
            "Crawled %s in %.0fms (%d chars of markdown)",
            url, (time.monotonic() - started) * 1000, len(data.markdown),
        )
        return CrawlResult.ok(data)

    def _failure(self, failed: Failed) -> CrawlResult:
        error = failed.error
        logger.error(
            "Crawl of %s failed at %s: %s (%s)",
            failed.url, error.failed_stage or "?", error.type, error.message,
        )
        return CrawlResult.fail(error)


def build_crawl_service(settings: Settings, fetch_stage: Optional[Stage] = None) -> CrawlService:
    """Wire a :class:`CrawlService` (and its cache/limiter) from *settings*."""
    stage = fetch_stage or make_fetch_stage(
        timeout=settings.fetch_timeout,
        retries=settings.fetch_retries,
    )
    return CrawlService(
        workflow=create_crawl_workflow(stage),
        cache=TTLCache(settings.cache_ttl_ms, settings.cache_max_size),
        rate_limiter=RateLimiter(),
        timeout_ms=settings.crawl_timeout_ms,
        max_requests=settings.rate_limit_max_requests,
        window_ms=settings.rate_limit_window_ms,
    )
