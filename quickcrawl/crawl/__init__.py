"""Crawl workflow: URL → HTML → metadata → content → cleaned HTML → markdown."""

from __future__ import annotations

from typing import Optional

from quickcrawl.crawl.extractor import clean_document, extract_metadata, parse_document
from quickcrawl.crawl.fetcher import make_fetch_stage
from quickcrawl.crawl.models import (
    Cleaned,
    Completed,
    CrawlResult,
    CrawlResultData,
    Failed,
    Fetched,
    Initial,
    MetadataExtracted,
    Parsed,
    StageContext,
)
from quickcrawl.crawl.renderer import convert_to_markdown
from quickcrawl.workflow import Stage, Workflow


def create_crawl_workflow(fetch_stage: Optional[Stage] = None) -> Workflow:
    """Return the five-stage crawl workflow.

    Args:
        fetch_stage: Replacement for the default HTTP fetch stage (tests use
            a stub returning canned HTML).
    """
    return Workflow(
        [
            fetch_stage or make_fetch_stage(),
            extract_metadata,
            parse_document,
            clean_document,
            convert_to_markdown,
        ]
    )


__all__ = [
    "create_crawl_workflow",
    "make_fetch_stage",
    "Initial",
    "Fetched",
    "MetadataExtracted",
    "Parsed",
    "Cleaned",
    "Completed",
    "Failed",
    "StageContext",
    "CrawlResult",
    "CrawlResultData",
]
