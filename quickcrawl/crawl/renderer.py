"""Render stage: ``Cleaned`` → ``Completed`` (HTML to markdown via html2text)."""

from __future__ import annotations

import logging
import re

import html2text

from quickcrawl.crawl.constants import CONVERT_TO_MARKDOWN
from quickcrawl.crawl.guards import expect
from quickcrawl.crawl.models import Cleaned, Completed, advance
from quickcrawl.errors import ParseFailed
from quickcrawl.workflow.types import stage

logger = logging.getLogger(__name__)


def html_to_markdown(html: str) -> str:
    """Convert *html* to markdown: ATX headings, pipe tables, no hard wrapping."""
    h = html2text.HTML2Text()
    h.ignore_links = False
    h.ignore_images = False
    h.ignore_tables = False
    h.body_width = 0
    h.unicode_snob = True
    text = h.handle(html or "")
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


@stage(CONVERT_TO_MARKDOWN, Cleaned, Completed)
async def convert_to_markdown(ctx: Cleaned) -> Completed:
    """Render the cleaned document as markdown."""
    ctx = expect(ctx, Cleaned)
    try:
        markdown = html_to_markdown(ctx.cleaned_document)
    except Exception as exc:
        raise ParseFailed(f"Markdown conversion failed: {exc}", stage=CONVERT_TO_MARKDOWN) from exc

    logger.info("Converted %s to markdown (%d chars)", ctx.url, len(markdown))
    return advance(ctx, Completed, markdown=markdown)
