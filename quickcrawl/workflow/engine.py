"""Linear workflow engine.

A :class:`Workflow` threads one context value through an ordered list of
:class:`~quickcrawl.workflow.types.Stage` objects: each stage's output is the
next stage's input.  There is no branching, skipping, or parallelism, and the
engine never retries; retry policy belongs inside individual stages.

The chain is type-checked when the workflow is built, so a stage that
cannot accept its predecessor's output is rejected before any request runs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from quickcrawl.errors import CrawlError, CrawlTimeout
from quickcrawl.workflow.types import ProgressCallback, Stage, WorkflowDefinitionError

logger = logging.getLogger(__name__)


class _RunState:
    """Mutable per-run bookkeeping (which stage is in flight)."""

    __slots__ = ("current",)

    def __init__(self, current: str) -> None:
        self.current = current


class Workflow:
    """Runs a linear pipeline of stages under an optional overall deadline."""

    def __init__(self, stages: Sequence[Stage]) -> None:
        if not stages:
            raise WorkflowDefinitionError("A workflow needs at least one stage.")
        for prev, nxt in zip(stages, stages[1:]):
            if prev.output_type is not nxt.input_type:
                raise WorkflowDefinitionError(
                    f"Stage {nxt.name!r} expects {nxt.input_type.__name__} but "
                    f"{prev.name!r} produces {prev.output_type.__name__}."
                )
        self._stages: tuple[Stage, ...] = tuple(stages)

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    @property
    def input_type(self) -> type:
        return self._stages[0].input_type

    @property
    def output_type(self) -> type:
        return self._stages[-1].output_type

    async def run(
        self,
        initial: Any,
        timeout_ms: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Any:
        """Drive *initial* through every stage and return the final context.

        Args:
            initial: Context accepted by the first stage.
            timeout_ms: Deadline for the whole chain.  When it elapses the
                stage in flight is cancelled and :class:`CrawlTimeout` is
                raised naming that stage.
            on_progress: Called as ``on_progress(stage_name, fraction)``
                after each stage finishes.

        Raises:
            WorkflowDefinitionError: *initial* (or a stage's output) is not the
                declared context type.
            CrawlError: The first stage failure, unchanged apart from its
                ``failed_stage`` attribute.
        """
        if not isinstance(initial, self.input_type):
            raise WorkflowDefinitionError(
                f"Workflow starts with {self.input_type.__name__}, "
                f"got {type(initial).__name__}."
            )

        state = _RunState(self._stages[0].name)
        if timeout_ms is None:
            return await self._chain(initial, state, on_progress)

        task = asyncio.ensure_future(self._chain(initial, state, on_progress))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            logger.warning(
                "Workflow deadline of %dms hit during stage %r", timeout_ms, state.current
            )
            task.cancel()
            # Let the cancelled stage unwind (closing sockets etc.) before returning.
            await asyncio.gather(task, return_exceptions=True)
            raise CrawlTimeout(timeout_ms, stage=state.current)

        return task.result()

    async def _chain(
        self,
        ctx: Any,
        state: _RunState,
        on_progress: Optional[ProgressCallback],
    ) -> Any:
        total = len(self._stages)
        for index, current in enumerate(self._stages, start=1):
            state.current = current.name
            logger.debug("Stage %s started", current.name)
            try:
                ctx = await current.run(ctx)
            except CrawlError as exc:
                if exc.failed_stage is None:
                    exc.failed_stage = current.name
                logger.info("Stage %s failed: %s", current.name, exc.type)
                raise

            if not isinstance(ctx, current.output_type):
                raise WorkflowDefinitionError(
                    f"Stage {current.name!r} returned {type(ctx).__name__}, "
                    f"declared {current.output_type.__name__}."
                )
            logger.info("Stage %s completed (%d/%d)", current.name, index, total)
            if on_progress is not None:
                on_progress(current.name, index / total)
        return ctx

    def __repr__(self) -> str:
        return f"<Workflow {' -> '.join(self.stage_names)}>"
