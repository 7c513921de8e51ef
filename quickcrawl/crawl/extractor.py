"""Markup stages: metadata extraction, primary-content selection, cleanup.

All three are pure functions of the context, built on BeautifulSoup with the
stdlib ``html.parser`` backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import BeautifulSoup

from quickcrawl.crawl.constants import CLEAN_DOCUMENT, EXTRACT_METADATA, PARSE_DOCUMENT
from quickcrawl.crawl.guards import expect, require_html
from quickcrawl.crawl.models import Cleaned, Fetched, Metadata, MetadataExtracted, Parsed, advance
from quickcrawl.errors import ParseFailed
from quickcrawl.workflow.types import stage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

# <meta> keys that also get a camelCase alias in the metadata map.
_META_ALIASES = {
    "og:title": "ogTitle",
    "og:description": "ogDescription",
    "og:image": "ogImage",
    "og:url": "ogUrl",
    "og:type": "ogType",
    "twitter:card": "twitterCard",
    "twitter:site": "twitterSite",
    "twitter:creator": "twitterCreator",
}

# Primary-content containers, most specific first.
_CONTENT_TAGS = ("article", "main", "body")

_COPY_LABELS = ("copy", "copy code to clipboard")


def _soup(markup: str, stage_name: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "html.parser")
    except Exception as exc:
        raise ParseFailed(f"Could not parse HTML: {exc}", stage=stage_name) from exc


def _rel(tag) -> str:  # type: ignore[no-untyped-def]
    """Return a ``<link>``'s ``rel`` as one lowercase string (bs4 splits it into a list)."""
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        return rel.lower()
    return " ".join(rel).lower()


def _find_favicon(soup: BeautifulSoup) -> Optional[str]:
    links = soup.select("head link[rel]")
    for wanted in ("icon", "shortcut icon"):
        for link in links:
            if _rel(link) == wanted and link.get("href"):
                return link["href"]
    return None


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

@stage(EXTRACT_METADATA, Fetched, MetadataExtracted)
async def extract_metadata(ctx: Fetched) -> MetadataExtracted:
    """Collect ``<title>``, ``<meta>`` and favicon data from ``<head>``.

    Missing tags are simply absent from the map; this stage never fails on
    sparse pages.
    """
    ctx = expect(ctx, Fetched)
    soup = _soup(ctx.html, EXTRACT_METADATA)
    metadata: Metadata = {}

    title_el = soup.select_one("head title")
    title = (title_el.get_text().strip() if title_el else "") or ctx.title
    if title:
        metadata["title"] = title

    for meta in soup.select("head meta"):
        content = meta.get("content")
        if content is None:
            continue
        for key in (meta.get("name"), meta.get("property")):
            if key:
                metadata[key] = content

    for key, alias in _META_ALIASES.items():
        if metadata.get(key):
            metadata[alias] = metadata[key]

    favicon = _find_favicon(soup)
    if favicon:
        metadata["favicon"] = favicon

    logger.info("Extracted %d metadata keys from %s", len(metadata), ctx.url)
    return advance(ctx, MetadataExtracted, metadata=metadata)


@stage(PARSE_DOCUMENT, MetadataExtracted, Parsed)
async def parse_document(ctx: MetadataExtracted) -> Parsed:
    """Select the primary-content region: ``<article>``, ``<main>``, ``<body>``, or everything."""
    ctx = expect(ctx, MetadataExtracted)
    soup = _soup(require_html(ctx), PARSE_DOCUMENT)

    document: Optional[str] = None
    for tag_name in _CONTENT_TAGS:
        container = soup.find(tag_name)
        if container is not None:
            document = container.decode_contents()
            logger.debug("Using <%s> as primary content for %s", tag_name, ctx.url)
            break
    if document is None:
        document = str(soup)

    logger.info("Parsed %s (%d chars of content)", ctx.url, len(document))
    return advance(ctx, Parsed, document=document)


@stage(CLEAN_DOCUMENT, Parsed, Cleaned)
async def clean_document(ctx: Parsed) -> Cleaned:
    """Strip scripts, styles, "copy" UI controls and generated attributes."""
    ctx = expect(ctx, Parsed)
    soup = _soup(ctx.document, CLEAN_DOCUMENT)

    for tag in soup(["style", "script", "noscript"]):
        tag.decompose()

    for control in soup.select('button, [role="button"]'):
        if control.decomposed:
            continue
        if "copy" in control.get_text().strip().lower():
            control.decompose()

    for inline in soup.find_all(["a", "span"]):
        if inline.decomposed:
            continue
        if inline.get_text().strip().lower() in _COPY_LABELS:
            inline.decompose()

    for tag in soup.find_all(True):
        for attr in [a for a in tag.attrs if a.startswith("data-")]:
            del tag[attr]
        classes = tag.get("class")
        if isinstance(classes, str):
            classes = classes.split()
        if classes:
            kept = [c for c in classes if not c.startswith("css-")]
            if kept:
                tag["class"] = kept
            else:
                del tag["class"]

    cleaned = str(soup)
    logger.info("Cleaned %s (%d chars)", ctx.url, len(cleaned))
    return advance(ctx, Cleaned, cleaned_document=cleaned)
