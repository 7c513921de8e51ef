"""Tests for the crawl context model, guards, envelope and error taxonomy.

Pure data tests: no network, no event loop.
"""

from __future__ import annotations

import dataclasses

import pytest

from quickcrawl.crawl.guards import expect, is_completed, is_failed, require_html
from quickcrawl.crawl.models import (
    STAGE_ORDER,
    Cleaned,
    Completed,
    CrawlResult,
    CrawlResultData,
    Failed,
    Fetched,
    Initial,
    MetadataExtracted,
    Parsed,
    advance,
    field_names,
    to_failed,
)
from quickcrawl.errors import (
    CrawlTimeout,
    FetchFailed,
    InvalidHtml,
    NetworkError,
    ParseFailed,
    UnknownError,
    to_crawl_error,
)
from quickcrawl.workflow.types import WorkflowDefinitionError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _completed() -> Completed:
    ctx = Initial(url="https://example.com/")
    ctx = advance(ctx, Fetched, html="<p>x</p>", title="T")
    ctx = advance(ctx, MetadataExtracted, metadata={"title": "T"})
    ctx = advance(ctx, Parsed, document="<p>x</p>")
    ctx = advance(ctx, Cleaned, cleaned_document="<p>x</p>")
    return advance(ctx, Completed, markdown="x")


# ---------------------------------------------------------------------------
# Variant shape
# ---------------------------------------------------------------------------

class TestStageVariants:
    def test_discriminants_in_order(self) -> None:
        assert [v.stage for v in STAGE_ORDER] == [
            "initial", "fetched", "metadata_extracted", "parsed", "cleaned", "completed",
        ]
        assert Failed.stage == "error"

    @pytest.mark.parametrize("index", range(1, len(STAGE_ORDER)))
    def test_each_variant_is_a_strict_superset_of_the_previous(self, index: int) -> None:
        before = set(field_names(STAGE_ORDER[index - 1]))
        after = set(field_names(STAGE_ORDER[index]))
        assert before < after

    def test_stage_is_not_a_data_field(self) -> None:
        assert "stage" not in field_names(Initial)

    def test_variants_are_immutable(self) -> None:
        ctx = Initial(url="https://example.com/")
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.url = "https://other.example/"  # type: ignore[misc]


class TestAdvance:
    def test_carries_every_field_forward(self) -> None:
        ctx = _completed()
        assert ctx.url == "https://example.com/"
        assert ctx.html == "<p>x</p>"
        assert ctx.title == "T"
        assert ctx.metadata == {"title": "T"}
        assert ctx.markdown == "x"

    def test_returns_new_value_and_leaves_input_alone(self) -> None:
        initial = Initial(url="https://example.com/")
        fetched = advance(initial, Fetched, html="<html></html>", title=None)
        assert fetched is not initial
        assert isinstance(initial, Initial)

    def test_rejects_skipping_a_stage(self) -> None:
        with pytest.raises(WorkflowDefinitionError):
            advance(Initial(url="u"), MetadataExtracted, html="", title=None, metadata={})

    def test_rejects_missing_field(self) -> None:
        with pytest.raises(WorkflowDefinitionError):
            advance(Initial(url="u"), Fetched, html="<p></p>")

    def test_rejects_extra_field(self) -> None:
        fetched = Fetched(url="u", html="h", title=None)
        with pytest.raises(WorkflowDefinitionError):
            advance(fetched, MetadataExtracted, metadata={}, markdown="nope")

    def test_cannot_advance_past_completed(self) -> None:
        with pytest.raises(WorkflowDefinitionError):
            advance(_completed(), Completed, markdown="again")


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

class TestGuards:
    def test_expect_returns_matching_context(self) -> None:
        ctx = Initial(url="u")
        assert expect(ctx, Initial) is ctx

    def test_expect_rejects_other_variant(self) -> None:
        with pytest.raises(WorkflowDefinitionError, match="fetched"):
            expect(Fetched(url="u", html="h", title=None), Initial)

    def test_is_completed_and_is_failed(self) -> None:
        done = _completed()
        failed = to_failed(done, UnknownError("boom"))
        assert is_completed(done) and not is_failed(done)
        assert is_failed(failed) and not is_completed(failed)
        assert failed.url == done.url
        assert failed.partial is None

    def test_require_html_rejects_blank(self) -> None:
        with pytest.raises(InvalidHtml):
            require_html(Fetched(url="u", html="   \n", title=None))

    def test_require_html_returns_markup(self) -> None:
        assert require_html(Fetched(url="u", html="<p>x</p>", title=None)) == "<p>x</p>"


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

class TestCrawlResult:
    def test_success_envelope(self) -> None:
        data = CrawlResultData.from_completed(_completed())
        result = CrawlResult.ok(data)
        assert result.status_code == 200
        assert result.to_dict() == {
            "success": True,
            "data": {"markdown": "x", "title": "T", "metadata": {"title": "T"}},
        }

    def test_none_values_are_dropped(self) -> None:
        data = CrawlResultData(markdown="m", title=None, metadata={"a": "1", "b": None})
        assert data.to_dict() == {"markdown": "m", "metadata": {"a": "1"}}

    def test_failure_envelope_uses_error_status(self) -> None:
        result = CrawlResult.fail(FetchFailed(404, "Not Found", "https://example.com/x"))
        assert result.status_code == 502
        assert result.to_dict() == {
            "success": False,
            "error": {
                "type": "fetch_failed",
                "message": "Fetch failed: 404 Not Found",
                "status": 404,
                "statusText": "Not Found",
                "url": "https://example.com/x",
            },
        }

    def test_empty_envelope_is_rejected(self) -> None:
        result = CrawlResult(success=False)
        with pytest.raises(ValueError):
            result.to_dict()


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------

class TestCrawlErrors:
    @pytest.mark.parametrize(
        ("error", "type_", "status"),
        [
            (FetchFailed(500, "Server Error", "u"), "fetch_failed", 502),
            (CrawlTimeout(100, "fetch_html"), "timeout", 504),
            (ParseFailed("bad", "parse_document"), "parse_failed", 422),
            (InvalidHtml("empty"), "invalid_html", 422),
            (NetworkError("refused"), "network_error", 503),
            (UnknownError("?"), "unknown", 500),
        ],
    )
    def test_type_and_status(self, error, type_: str, status: int) -> None:
        assert error.type == type_
        assert error.status_code == status
        assert error.to_dict()["type"] == type_

    def test_timeout_payload(self) -> None:
        assert CrawlTimeout(250, "fetch_html").to_dict() == {
            "type": "timeout",
            "message": "Request timed out after 250ms",
            "timeoutMs": 250,
            "stage": "fetch_html",
        }

    def test_optional_cause_omitted_when_absent(self) -> None:
        assert "cause" not in NetworkError("refused").to_dict()
        assert NetworkError("refused", cause="ConnectError").to_dict()["cause"] == "ConnectError"

    def test_to_crawl_error_passes_crawl_errors_through(self) -> None:
        err = InvalidHtml("x")
        assert to_crawl_error(err) is err

    def test_to_crawl_error_wraps_other_exceptions(self) -> None:
        wrapped = to_crawl_error(RuntimeError("kaboom"))
        assert isinstance(wrapped, UnknownError)
        assert wrapped.message == "kaboom"
        assert wrapped.to_dict()["cause"] == "kaboom"
