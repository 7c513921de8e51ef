"""Tests for the HTTP layer (``GET /`` and ``POST /crawl``).

All tests use the FastAPI TestClient.  The lifespan builds a real
``CrawlService``; each fixture then swaps in one whose fetch stage is a stub
returning canned HTML, so no network calls are made.
"""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from quickcrawl.api.app import create_app
from quickcrawl.config import Settings
from quickcrawl.crawl.constants import FETCH_HTML
from quickcrawl.crawl.fetcher import _extract_title
from quickcrawl.crawl.models import Fetched, Initial, advance
from quickcrawl.errors import CrawlError, FetchFailed, NetworkError, ParseFailed
from quickcrawl.services import build_crawl_service
from quickcrawl.workflow import stage


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_HTML = "<html><head><title>T</title></head><body><article><p>Hi</p></article></body></html>"


class StubFetch:
    """Fetch stage double: canned HTML or a canned error, with a call counter."""

    def __init__(self, html: str = _HTML) -> None:
        self.html = html
        self.error: CrawlError | None = None
        self.calls: list[str] = []

        @stage(FETCH_HTML, Initial, Fetched)
        async def fetch(ctx: Initial) -> Fetched:
            self.calls.append(ctx.url)
            if self.error is not None:
                raise self.error
            return advance(ctx, Fetched, html=self.html, title=_extract_title(self.html))

        self.stage = fetch


def _settings(**overrides) -> Settings:  # type: ignore[no-untyped-def]
    values = dict(
        rate_limit_max_requests=10,
        rate_limit_window_ms=60_000,
        cache_ttl_ms=300_000,
        cache_max_size=100,
        crawl_timeout_ms=30_000,
        log_level="warning",
    )
    values.update(overrides)
    return Settings(**values)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fetch() -> StubFetch:
    return StubFetch()


@pytest.fixture()
def client(fetch: StubFetch) -> Generator[TestClient, None, None]:
    """TestClient whose crawl service uses the stub fetch stage."""
    cfg = _settings()
    app = create_app(cfg)

    with TestClient(app, raise_server_exceptions=True) as c:
        # Lifespan has run by this point; replace its service with a stubbed one.
        c.app.state.crawl_service = build_crawl_service(cfg, fetch_stage=fetch.stage)  # type: ignore[attr-defined]
        yield c


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestLiveness:
    def test_root_returns_text(self, client: TestClient) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.text


class TestCrawlSuccess:
    def test_returns_markdown_title_and_metadata(self, client: TestClient) -> None:
        resp = client.post("/crawl", json={"url": "https://example.com"})
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "data": {"markdown": "Hi", "title": "T", "metadata": {"title": "T"}},
        }

    def test_second_request_uses_cache(self, client: TestClient, fetch: StubFetch) -> None:
        first = client.post("/crawl", json={"url": "https://example.com"})
        second = client.post("/crawl", json={"url": "https://example.com"})

        assert first.json() == second.json()
        assert len(fetch.calls) == 1

    def test_lifespan_builds_a_service(self) -> None:
        with TestClient(create_app(_settings())) as c:
            service = c.app.state.crawl_service  # type: ignore[attr-defined]
            assert service.max_requests == 10
            assert service.workflow.stage_names[0] == FETCH_HTML


class TestValidation:
    @pytest.mark.parametrize(
        "body",
        [{}, {"url": "not a url"}, {"url": "ftp://example.com/file"}, {"url": 42}],
    )
    def test_invalid_input_is_422_with_issues(self, client: TestClient, body: dict) -> None:
        resp = client.post("/crawl", json=body)
        assert resp.status_code == 422
        data = resp.json()
        assert data["error"] == "Invalid input"
        assert isinstance(data["issues"], list) and data["issues"]


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("error", "status", "type_"),
        [
            (FetchFailed(404, "Not Found", "https://example.com/"), 502, "fetch_failed"),
            (NetworkError("connection refused"), 503, "network_error"),
            (ParseFailed("bad markup", "fetch_html"), 422, "parse_failed"),
        ],
    )
    def test_crawl_errors_map_to_status(
        self, client: TestClient, fetch: StubFetch, error: CrawlError, status: int, type_: str
    ) -> None:
        fetch.error = error
        resp = client.post("/crawl", json={"url": "https://example.com"})

        assert resp.status_code == status
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["type"] == type_
        assert body["error"]["message"]

    def test_failures_are_not_cached(self, client: TestClient, fetch: StubFetch) -> None:
        fetch.error = NetworkError("connection refused")
        client.post("/crawl", json={"url": "https://example.com"})
        fetch.error = None
        resp = client.post("/crawl", json={"url": "https://example.com"})

        assert resp.status_code == 200
        assert len(fetch.calls) == 2


class TestRateLimit:
    def test_eleventh_request_is_429_with_retry_after(self, client: TestClient) -> None:
        for _ in range(10):
            assert client.post("/crawl", json={"url": "https://example.com"}).status_code == 200

        resp = client.post("/crawl", json={"url": "https://example.com"})
        assert resp.status_code == 429
        assert resp.json() == {"error": "Rate limit exceeded"}
        assert resp.headers["Retry-After"] == "60"

    def test_forwarded_for_identifies_the_client(self, client: TestClient) -> None:
        for _ in range(10):
            client.post(
                "/crawl",
                json={"url": "https://example.com"},
                headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
            )

        blocked = client.post(
            "/crawl", json={"url": "https://example.com"}, headers={"X-Forwarded-For": "203.0.113.7"}
        )
        other = client.post(
            "/crawl", json={"url": "https://example.com"}, headers={"X-Real-IP": "198.51.100.2"}
        )

        assert blocked.status_code == 429
        assert other.status_code == 200
