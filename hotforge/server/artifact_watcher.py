"""
Artifact watcher of the control-plane service.

Watches the build-output directory and restarts the resource whose
top-level folder changed. Changes under `scripts/` and to the service's
own resource are ignored.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from watchfiles import Change, awatch

from hotforge.watch import ANY_FILE_PATTERN, PatternFilter

from .restart import ResourceRestarter

logger = logging.getLogger(__name__)

SKIPPED_SEGMENTS = frozenset({"scripts"})


class ArtifactWatcher:
    """
    Restarts resources when their build output changes.

    Args:
        artifact_dir: Build-output directory to watch
        restarter: Performs the restarts
        self_resource: Name of the resource running this service
        debounce_ms: watchfiles' batching window
    """

    def __init__(
        self,
        artifact_dir: Path,
        restarter: ResourceRestarter,
        *,
        self_resource: str,
        debounce_ms: int = 300,
    ):
        self.artifact_dir = Path(artifact_dir).resolve()
        self.restarter = restarter
        self.self_resource = self_resource
        self.debounce_ms = debounce_ms
        self.filter = PatternFilter(ANY_FILE_PATTERN)
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def resources_for(self, paths: Iterable[str]) -> list[str]:
        """Top-level resource folders touched by `paths`, in first-seen order."""
        names: dict[str, None] = {}
        for path in paths:
            try:
                relative = Path(path).resolve().relative_to(self.artifact_dir)
            except ValueError:
                continue
            if len(relative.parts) < 2:
                continue
            name = relative.parts[0]
            if name in SKIPPED_SEGMENTS or name == self.self_resource:
                continue
            names.setdefault(name, None)
        return list(names)

    async def handle_changes(self, changes: Iterable[tuple[Change, str]]) -> dict[str, bool]:
        """Restart every resource touched by one batch of changes."""
        results: dict[str, bool] = {}
        for name in self.resources_for(path for _, path in changes):
            logger.info(f"Build output of {name} changed, restarting")
            results[name] = await self.restarter.restart(name)
            if not results[name]:
                logger.warning(f"Could not restart {name}")
        return results

    async def _watch_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    async for changes in awatch(
                        self.artifact_dir,
                        watch_filter=self.filter,
                        stop_event=self._stop_event,
                        debounce=self.debounce_ms,
                    ):
                        try:
                            await self.handle_changes(changes)
                        except Exception:
                            logger.exception("Error handling artifact changes")
                except Exception:
                    if self._stop_event.is_set():
                        return
                    logger.exception("Artifact watcher crashed; restarting")
                await asyncio.sleep(0.5)
        except asyncio.CancelledError:
            return

    def start(self) -> asyncio.Task:
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(), name="watch:artifacts")
        logger.info(f"Watching build output at {self.artifact_dir}")
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
