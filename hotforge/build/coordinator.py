"""
Run coordination.

At most one pipeline run is active at any time. Watch-triggered rebuilds
that arrive while a run is active are dropped, not queued: the active run
picks up the settled state and the source events are debounced anyway.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hotforge.errors import StageError
from hotforge.resources import ResourceLifecycleController

from .context import BuildContext
from .stages import RebuildKind, StageFactory

logger = logging.getLogger(__name__)


class RunCoordinator:
    """Single-slot, non-blocking run guard."""

    def __init__(self) -> None:
        self._active: str | None = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    @property
    def active(self) -> str | None:
        """Label of the active run, if any."""
        return self._active

    def try_acquire(self, label: str = "run") -> bool:
        """Take the slot; returns False without waiting if it is taken."""
        if self._active is not None:
            return False
        self._active = label
        return True

    def release(self) -> None:
        self._active = None


class RebuildCoordinator:
    """
    Runs full builds and trigger-scoped rebuilds, one at a time.

    Args:
        factory: Produces the stage list for each trigger
        base_context: Template context; every run derives a fresh one
        runs: Shared run guard
        lifecycle: Used to schedule restarts of rebuilt resources
    """

    def __init__(
        self,
        factory: StageFactory,
        base_context: BuildContext,
        runs: RunCoordinator | None = None,
        lifecycle: ResourceLifecycleController | None = None,
    ):
        self.factory = factory
        self.base_context = base_context
        self.runs = runs or RunCoordinator()
        self.lifecycle = lifecycle
        self.completed_runs: int = 0

    @property
    def busy(self) -> bool:
        return self.runs.busy

    async def build(self, clean: bool | None = None) -> BuildContext | None:
        """
        Run the full pipeline.

        Returns:
            The run's context, or None if another run was active

        Raises:
            StageError: If a stage fails
        """
        if not self.runs.try_acquire("full"):
            logger.warning("Build already in progress, not starting a full build")
            return None
        try:
            ctx = self.base_context.derive(trigger="full")
            if clean is None:
                clean = ctx.options.clean
            await self.factory.full_build(clean=clean).run(ctx)
            self.completed_runs += 1
            return ctx
        finally:
            self.runs.release()

    async def rebuild(
        self,
        kind: RebuildKind | str,
        plugin_dir: Path | None = None,
    ) -> BuildContext | None:
        """
        Rebuild the part of the tree affected by a change.

        Stage failures are logged here and never propagate, so the watch
        loop stays alive for the next event.

        Returns:
            The run's context, or None if the trigger was dropped
        """
        kind = RebuildKind(kind)
        label = f"{kind.value}:{plugin_dir}" if plugin_dir else kind.value
        if not self.runs.try_acquire(label):
            logger.info(f"Build in progress ({self.runs.active}), dropping rebuild trigger {label}")
            return None

        try:
            pipeline = self.factory.for_trigger(kind, plugin_dir)
            ctx = self.base_context.derive(trigger=kind.value)
            logger.info(f"Rebuilding {label}: stages={pipeline.stage_names}")
            try:
                await pipeline.run(ctx)
            except StageError as e:
                logger.error(f"Rebuild {label} failed in stage '{e.stage_name}': {e.cause}")
                return ctx
            self.completed_runs += 1
        finally:
            self.runs.release()

        self._schedule_restarts(ctx)
        return ctx

    def _schedule_restarts(self, ctx: BuildContext) -> None:
        if self.lifecycle is None or not self.lifecycle.reload_enabled:
            return
        if ctx.deployed_to is None:
            logger.debug("Nothing deployed, no restarts to schedule")
            return
        for name in ctx.deployed_resources:
            self.lifecycle.schedule_restart(name)
