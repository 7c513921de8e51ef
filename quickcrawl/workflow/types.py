"""Stage contract for the workflow engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

StageFn = Callable[[Any], Awaitable[Any]]
ProgressCallback = Callable[[str, float], None]


class WorkflowDefinitionError(TypeError):
    """A workflow was composed (or driven) with incompatible stages."""


@dataclass(frozen=True)
class Stage:
    """One pipeline step: an async function from ``input_type`` to ``output_type``.

    ``input_type`` / ``output_type`` are the context classes the step accepts
    and produces.  The engine uses them to check a chain of stages before it
    ever runs.
    """

    name: str
    input_type: type
    output_type: type
    run: StageFn
    description: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"<Stage {self.name!r} "
            f"{self.input_type.__name__} -> {self.output_type.__name__}>"
        )


def stage(
    name: str,
    input_type: type,
    output_type: type,
    description: Optional[str] = None,
) -> Callable[[StageFn], Stage]:
    """Decorator turning an ``async def`` into a :class:`Stage`.

    Usage::

        @stage("parse_document", MetadataExtracted, Parsed)
        async def parse_document(ctx: MetadataExtracted) -> Parsed:
            ...
    """

    def wrap(fn: StageFn) -> Stage:
        return Stage(
            name=name,
            input_type=input_type,
            output_type=output_type,
            run=fn,
            description=description or (fn.__doc__ or "").strip().split("\n")[0] or None,
        )

    return wrap
