"""Narrowing helpers for :data:`~quickcrawl.crawl.models.StageContext`."""

from __future__ import annotations

from typing import Any, Type, TypeVar

from quickcrawl.crawl.models import Completed, Failed
from quickcrawl.errors import InvalidHtml
from quickcrawl.workflow.types import WorkflowDefinitionError

T = TypeVar("T")


def expect(ctx: Any, variant: Type[T]) -> T:
    """Return *ctx* narrowed to *variant*, or raise if it is a different stage."""
    if type(ctx) is not variant:
        raise WorkflowDefinitionError(
            f"Expected a {variant.__name__} context, got "
            f"{getattr(ctx, 'stage', type(ctx).__name__)!r}."
        )
    return ctx


def is_completed(ctx: Any) -> bool:
    return isinstance(ctx, Completed)


def is_failed(ctx: Any) -> bool:
    return isinstance(ctx, Failed)


def require_html(ctx: Any) -> str:
    """Return the fetched markup, raising :class:`InvalidHtml` when it is blank."""
    html = getattr(ctx, "html", None)
    if not html or not html.strip():
        raise InvalidHtml(f"Expected html in context at stage {ctx.stage!r}")
    return html
