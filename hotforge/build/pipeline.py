"""
Build pipeline.

An ordered list of named stages executed one after another against a
BuildContext. The first failing stage aborts the run: later stages do not
start and the failure reaches the caller as a StageError naming the stage.
There is no retry here; per-item recovery lives inside the stages.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from hotforge.errors import StageError
from hotforge.observability import BuildLogger, JSONLogger

from .context import BuildContext

logger = logging.getLogger(__name__)

StageHandler = Callable[[BuildContext], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Stage:
    name: str
    handler: StageHandler


class BuildPipeline:
    """
    Sequential stage runner with a fluent builder API.

    Example:
        pipeline = (
            BuildPipeline()
            .add_stage("build_core_plugins", stages.build_core_plugins)
            .add_stage("deploy_resources", stages.deploy_resources)
        )
        await pipeline.run(ctx)
    """

    def __init__(self) -> None:
        self._stages: list[Stage] = []

    def add_stage(self, name: str, handler: StageHandler) -> "BuildPipeline":
        """Append a stage."""
        self._stages.append(Stage(name=name, handler=handler))
        return self

    def add_stage_if(self, condition: bool, name: str, handler: StageHandler) -> "BuildPipeline":
        """Conditionally append a stage."""
        if condition:
            self.add_stage(name, handler)
        return self

    @property
    def stage_names(self) -> list[str]:
        """Get names of all stages in order."""
        return [s.name for s in self._stages]

    def __len__(self) -> int:
        return len(self._stages)

    async def run(self, ctx: BuildContext) -> BuildContext:
        """
        Execute every stage in insertion order.

        Returns:
            The context, carrying the products of every stage

        Raises:
            StageError: When a stage handler raises; the original error
                is chained as the cause
        """
        log = BuildLogger(run_id=ctx.short_id, trigger=ctx.trigger, inner=ctx.logger)
        log.pipeline_started(self.stage_names)
        logger.debug(f"Pipeline starting: run_id={ctx.short_id}, stages={self.stage_names}")

        run_logger = ctx.logger
        for stage in self._stages:
            log.stage_started(stage.name)
            if isinstance(run_logger, JSONLogger):
                ctx.logger = run_logger.for_stage(stage.name)
            start_time = time.perf_counter()
            try:
                await stage.handler(ctx)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                ctx.record_timing(stage.name, duration_ms)
                log.stage_failed(stage.name, e, duration_ms)
                log.pipeline_completed(success=False, duration_ms=ctx.elapsed_ms)
                raise StageError(stage.name, e) from e
            finally:
                ctx.logger = run_logger

            duration_ms = (time.perf_counter() - start_time) * 1000
            ctx.record_timing(stage.name, duration_ms)
            log.stage_completed(stage.name, duration_ms)

        log.pipeline_completed(success=True, duration_ms=ctx.elapsed_ms)
        return ctx

    def __repr__(self) -> str:
        return f"BuildPipeline(stages={self.stage_names})"
