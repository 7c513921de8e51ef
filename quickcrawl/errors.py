"""Crawl error taxonomy.

Each failure mode is its own exception class with a ``type`` discriminant, so
callers can either ``except`` a specific class or switch on ``error.type``.
``to_dict()`` is the wire form used in response envelopes; ``status_code``
is the HTTP status the API answers with.
"""

from __future__ import annotations

from typing import Any, ClassVar


class CrawlError(Exception):
    """Base class for every failure the crawl pipeline can report."""

    type: ClassVar[str] = "unknown"
    status_code: ClassVar[int] = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # Set by the workflow engine to the name of the stage that raised.
        self.failed_stage: str | None = None

    def _fields(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type, "message": self.message}
        payload.update(
            {k: v for k, v in self._fields().items() if v is not None}
        )
        return payload

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_dict()!r})"


class FetchFailed(CrawlError):
    """The server answered with a non-2xx status."""

    type = "fetch_failed"
    status_code = 502

    def __init__(self, status: int, status_text: str, url: str) -> None:
        super().__init__(f"Fetch failed: {status} {status_text}".rstrip())
        self.status = status
        self.status_text = status_text
        self.url = url

    def _fields(self) -> dict[str, Any]:
        return {"status": self.status, "statusText": self.status_text, "url": self.url}


class CrawlTimeout(CrawlError):
    type = "timeout"
    status_code = 504

    def __init__(self, timeout_ms: int, stage: str) -> None:
        super().__init__(f"Request timed out after {timeout_ms}ms")
        self.timeout_ms = timeout_ms
        self.stage = stage

    def _fields(self) -> dict[str, Any]:
        return {"timeoutMs": self.timeout_ms, "stage": self.stage}


class ParseFailed(CrawlError):
    type = "parse_failed"
    status_code = 422

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage

    def _fields(self) -> dict[str, Any]:
        return {"stage": self.stage}


class NetworkError(CrawlError):
    """Transport-level failure (DNS, connection refused, reset, ...)."""

    type = "network_error"
    status_code = 503

    def __init__(self, message: str, cause: str | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    def _fields(self) -> dict[str, Any]:
        return {"cause": self.cause}


class InvalidHtml(CrawlError):
    type = "invalid_html"
    status_code = 422


class UnknownError(CrawlError):
    type = "unknown"
    status_code = 500

    def __init__(self, message: str, cause: BaseException | str | None = None) -> None:
        super().__init__(message)
        self.cause = cause

    def _fields(self) -> dict[str, Any]:
        return {"cause": str(self.cause) if self.cause is not None else None}


class RateLimitExceeded(Exception):
    """Raised by the crawl service when a caller is over its request budget."""

    def __init__(self, identifier: str, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded for {identifier!r}")
        self.identifier = identifier
        self.retry_after = retry_after


def to_crawl_error(exc: BaseException) -> CrawlError:
    """Return *exc* unchanged if it is a :class:`CrawlError`, else wrap it as ``unknown``."""
    if isinstance(exc, CrawlError):
        return exc
    return UnknownError(str(exc) or exc.__class__.__name__, cause=exc)
