"""Data models for the crawl pipeline.

The pipeline context is a tagged union: one frozen dataclass per stage, each
with a ``stage`` discriminant.  Variants are ordered and every variant carries
all of its predecessor's fields plus exactly one addition::

    Initial -> Fetched -> MetadataExtracted -> Parsed -> Cleaned -> Completed

``Failed`` can be reached from any point.  Stage functions never build the
next variant by hand; they call :func:`advance`, which copies the existing
fields and refuses any move other than one step forward.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Optional, Union

from quickcrawl.errors import CrawlError
from quickcrawl.workflow.types import WorkflowDefinitionError

Metadata = Dict[str, Optional[str]]


# ---------------------------------------------------------------------------
# Stage context variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Initial:
    stage: ClassVar[str] = "initial"

    url: str


@dataclass(frozen=True)
class Fetched:
    stage: ClassVar[str] = "fetched"

    url: str
    html: str
    title: Optional[str]


@dataclass(frozen=True)
class MetadataExtracted:
    stage: ClassVar[str] = "metadata_extracted"

    url: str
    html: str
    title: Optional[str]
    metadata: Metadata


@dataclass(frozen=True)
class Parsed:
    stage: ClassVar[str] = "parsed"

    url: str
    html: str
    title: Optional[str]
    metadata: Metadata
    document: str


@dataclass(frozen=True)
class Cleaned:
    stage: ClassVar[str] = "cleaned"

    url: str
    html: str
    title: Optional[str]
    metadata: Metadata
    document: str
    cleaned_document: str


@dataclass(frozen=True)
class Completed:
    stage: ClassVar[str] = "completed"

    url: str
    html: str
    title: Optional[str]
    metadata: Metadata
    document: str
    cleaned_document: str
    markdown: str


@dataclass(frozen=True)
class Failed:
    """Terminal failure.  ``partial`` is reserved for diagnostics."""

    stage: ClassVar[str] = "error"

    url: str
    error: CrawlError
    partial: Optional[Dict[str, Any]] = None


StageContext = Union[Initial, Fetched, MetadataExtracted, Parsed, Cleaned, Completed, Failed]

STAGE_ORDER: tuple[type, ...] = (
    Initial,
    Fetched,
    MetadataExtracted,
    Parsed,
    Cleaned,
    Completed,
)


def field_names(variant: type) -> list[str]:
    """Return the data field names of a context variant, in declaration order."""
    return [f.name for f in fields(variant)]


def advance(ctx: Any, target: type, **added: Any) -> Any:
    """Build the *target* variant from *ctx* plus the newly *added* fields.

    Every field of *ctx* is carried over unchanged.

    Raises:
        WorkflowDefinitionError: *target* is not the variant right after
            ``type(ctx)``, or *added* does not supply exactly the fields the
            step introduces.
    """
    current = type(ctx)
    if current not in STAGE_ORDER or current is Completed:
        raise WorkflowDefinitionError(f"Cannot advance from {current.__name__}.")
    expected = STAGE_ORDER[STAGE_ORDER.index(current) + 1]
    if target is not expected:
        raise WorkflowDefinitionError(
            f"{current.__name__} advances to {expected.__name__}, not {target.__name__}."
        )

    carried = field_names(current)
    new_fields = [name for name in field_names(target) if name not in carried]
    if sorted(added) != sorted(new_fields):
        raise WorkflowDefinitionError(
            f"{target.__name__} adds {new_fields}, got {sorted(added)}."
        )

    values = {name: getattr(ctx, name) for name in carried}
    values.update(added)
    return target(**values)


def to_failed(ctx: Any, error: CrawlError) -> Failed:
    """Return the ``Failed`` variant for *ctx*."""
    return Failed(url=ctx.url, error=error)


# ---------------------------------------------------------------------------
# Result payload / envelope
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CrawlResultData:
    """What a successful crawl hands back (and what the cache stores)."""

    markdown: str
    title: Optional[str] = None
    metadata: Optional[Metadata] = None

    @classmethod
    def from_completed(cls, ctx: Completed) -> CrawlResultData:
        metadata = {k: v for k, v in ctx.metadata.items() if v is not None}
        return cls(markdown=ctx.markdown, title=ctx.title, metadata=metadata)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"markdown": self.markdown}
        if self.title is not None:
            payload["title"] = self.title
        if self.metadata is not None:
            payload["metadata"] = {k: v for k, v in self.metadata.items() if v is not None}
        return payload


@dataclass(frozen=True)
class CrawlResult:
    """Uniform ``{success, data | error}`` envelope."""

    success: bool
    data: Optional[CrawlResultData] = None
    error: Optional[CrawlError] = None

    @classmethod
    def ok(cls, data: CrawlResultData) -> CrawlResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: CrawlError) -> CrawlResult:
        return cls(success=False, error=error)

    @property
    def status_code(self) -> int:
        if self.error is not None:
            return self.error.status_code
        return 200

    def to_dict(self) -> dict[str, Any]:
        if self.success and self.data is not None:
            return {"success": True, "data": self.data.to_dict()}
        if self.error is not None:
            return {"success": False, "error": self.error.to_dict()}
        raise ValueError("CrawlResult carries neither data nor error")
