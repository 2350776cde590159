"""
Directory watch manager.

One watchfiles loop per watch target. Every batch of events first checks
the run coordinator: while a build is running, events are dropped rather
than queued. Surviving events are routed by target kind:

    plugin     -> debounce key = plugin dir     -> rebuild("plugin", dir)
    core       -> debounce key = "core"         -> rebuild("core")
    ui_page    -> debounce key = webview-<dir>  -> rebuild("plugin", dir)
    webview    -> debounce key = "webview"      -> rebuild("webview")
    output     -> resolve and log only
    generated  -> resolve, then debounced restart of the resource
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable

from watchfiles import Change, awatch

from hotforge.build import RebuildCoordinator, RebuildKind
from hotforge.plugins import find_plugin_paths
from hotforge.resources import ResourceLifecycleController, ResourceResolver
from hotforge.scheduling import DebouncedTaskScheduler, webview_key

from .filters import (
    ANY_FILE_PATTERN,
    CORE_SOURCE_PATTERN,
    PLUGIN_SOURCE_PATTERN,
    UI_PAGE_PATTERN,
    PatternFilter,
)

logger = logging.getLogger(__name__)

FileChanges = Iterable[tuple[Change, str]]

GENERATED_SKIP_DIRS = frozenset({"webview", "scripts"})


class WatchKind(str, Enum):
    PLUGIN = "plugin"
    CORE = "core"
    UI_PAGE = "ui_page"
    WEBVIEW = "webview"
    OUTPUT = "output"
    GENERATED = "generated"


@dataclass
class WatchTarget:
    """A recursively watched root with its event filter."""

    name: str
    root: Path
    kind: WatchKind
    pattern: str
    ignore_paths: tuple[Path, ...] = ()
    exclude: str | None = None
    filter: PatternFilter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root).resolve()
        self.filter = PatternFilter(
            self.pattern,
            exclude=self.exclude,
            ignore_paths=tuple(Path(p).resolve() for p in self.ignore_paths),
        )

    def accepts(self, change: Change, path: str) -> bool:
        return self.filter(change, path)


class WatchManager:
    """
    Sets up and runs the watches of the dev loop.

    Args:
        plugins_dir: Regular plugin sources
        core_dir: Core plugin sources
        dist_dir: Build output
        webview_dir: Shared UI framework sources
        coordinator: Runs rebuilds; its busy state gates every event
        scheduler: Debounces rebuild triggers per key
        lifecycle: Schedules restarts for generated-folder changes
        debounce_ms: watchfiles' own batching window
    """

    def __init__(
        self,
        *,
        plugins_dir: Path,
        core_dir: Path,
        dist_dir: Path,
        webview_dir: Path | None,
        coordinator: RebuildCoordinator,
        scheduler: DebouncedTaskScheduler,
        lifecycle: ResourceLifecycleController | None = None,
        debounce_ms: int = 100,
    ):
        self.plugins_dir = Path(plugins_dir).resolve()
        self.core_dir = Path(core_dir).resolve()
        self.dist_dir = Path(dist_dir).resolve()
        self.webview_dir = Path(webview_dir).resolve() if webview_dir else None
        self.coordinator = coordinator
        self.scheduler = scheduler
        self.lifecycle = lifecycle
        self.debounce_ms = debounce_ms

        self.output_resolver = ResourceResolver(self.dist_dir)
        generated_dir = lifecycle.generated_dir if lifecycle else None
        self.generated_dir = generated_dir.resolve() if generated_dir else None
        self.generated_resolver = ResourceResolver(self.generated_dir) if self.generated_dir else None

        self.targets: list[WatchTarget] = []
        self.dropped_events: int = 0
        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    # =========================================================================
    # Target Setup
    # =========================================================================

    def setup_all(self) -> list[WatchTarget]:
        """Build every watch target; missing roots are skipped with a warning."""
        targets: list[WatchTarget] = []
        ignore_output = (self.dist_dir,)

        for plugin_dir in find_plugin_paths(self.plugins_dir):
            targets.append(
                WatchTarget(
                    name=f"plugin {plugin_dir.name}",
                    root=plugin_dir,
                    kind=WatchKind.PLUGIN,
                    pattern=PLUGIN_SOURCE_PATTERN,
                    ignore_paths=ignore_output,
                    exclude=UI_PAGE_PATTERN,
                )
            )

        if self.core_dir.is_dir():
            targets.append(
                WatchTarget(
                    name="core",
                    root=self.core_dir,
                    kind=WatchKind.CORE,
                    pattern=CORE_SOURCE_PATTERN,
                    ignore_paths=ignore_output,
                )
            )

        if self.plugins_dir.is_dir():
            targets.append(
                WatchTarget(
                    name="ui pages",
                    root=self.plugins_dir,
                    kind=WatchKind.UI_PAGE,
                    pattern=UI_PAGE_PATTERN,
                    ignore_paths=ignore_output,
                )
            )

        if self.webview_dir and self.webview_dir.is_dir():
            targets.append(
                WatchTarget(
                    name="webview",
                    root=self.webview_dir,
                    kind=WatchKind.WEBVIEW,
                    pattern=PLUGIN_SOURCE_PATTERN,
                    # App.tsx is generated by the UI page builder
                    exclude=r"/src/App\.tsx$",
                )
            )

        self.dist_dir.mkdir(parents=True, exist_ok=True)
        targets.append(
            WatchTarget(
                name="output",
                root=self.dist_dir,
                kind=WatchKind.OUTPUT,
                pattern=ANY_FILE_PATTERN,
            )
        )

        if self.generated_dir is not None:
            self.generated_dir.mkdir(parents=True, exist_ok=True)
            targets.append(
                WatchTarget(
                    name="generated resources",
                    root=self.generated_dir,
                    kind=WatchKind.GENERATED,
                    pattern=ANY_FILE_PATTERN,
                )
            )
        else:
            logger.warning("No host resource directory configured, generated resources are not watched")

        for target in targets:
            logger.info(f"Setting up watcher for {target.name}: {target.root}")
        self.targets = targets
        return targets

    # =========================================================================
    # Event Routing
    # =========================================================================

    def handle_changes(self, target: WatchTarget, changes: FileChanges) -> int:
        """
        Route one batch of events from a target.

        Returns:
            Number of events that passed the busy check and the filter
        """
        changes = list(changes)
        if self.coordinator.busy:
            self.dropped_events += len(changes)
            logger.debug(f"Build already in progress, skipping {len(changes)} event(s) in {target.name}")
            return 0

        paths = [path for change, path in changes if target.accepts(change, path)]
        if not paths:
            return 0

        logger.debug(f"{len(paths)} change(s) in {target.name}: {paths[:5]}")

        if target.kind is WatchKind.PLUGIN:
            self._schedule_rebuild(str(target.root), RebuildKind.PLUGIN, target.root)
        elif target.kind is WatchKind.CORE:
            self._schedule_rebuild("core", RebuildKind.CORE)
        elif target.kind is WatchKind.UI_PAGE:
            for plugin_dir in {Path(p).parent.parent for p in paths}:
                logger.info(f"UI page changed in {plugin_dir.name}")
                self._schedule_rebuild(webview_key(str(plugin_dir)), RebuildKind.PLUGIN, plugin_dir)
        elif target.kind is WatchKind.WEBVIEW:
            self._schedule_rebuild("webview", RebuildKind.WEBVIEW)
        elif target.kind is WatchKind.OUTPUT:
            self._log_output_changes(paths)
        elif target.kind is WatchKind.GENERATED:
            self._restart_generated(paths)

        return len(paths)

    def _schedule_rebuild(self, key: str, kind: RebuildKind, plugin_dir: Path | None = None) -> None:
        self.scheduler.execute(key, lambda: self.coordinator.rebuild(kind, plugin_dir))

    def _log_output_changes(self, paths: list[str]) -> None:
        for path in paths:
            name = self.output_resolver.resolve(path)
            logger.info(f"Output changed: {path} (resource: {name or 'unknown'})")

    def _restart_generated(self, paths: list[str]) -> None:
        if self.lifecycle is None or self.generated_resolver is None:
            return
        names: dict[str, None] = {}
        for path in paths:
            try:
                relative = Path(path).resolve().relative_to(self.generated_dir)
            except ValueError:
                continue
            if GENERATED_SKIP_DIRS.intersection(relative.parts[:-1]):
                continue
            name = self.generated_resolver.resolve(path)
            if name is None:
                logger.debug(f"No resource for generated change {path}")
                continue
            names.setdefault(name, None)

        for name in names:
            self.lifecycle.schedule_restart(name)

    # =========================================================================
    # Watch Loops
    # =========================================================================

    async def _watch_loop(self, target: WatchTarget) -> None:
        try:
            while not self._stop_event.is_set():
                try:
                    async for changes in awatch(
                        target.root,
                        watch_filter=target.filter,
                        stop_event=self._stop_event,
                        debounce=self.debounce_ms,
                        recursive=True,
                    ):
                        try:
                            self.handle_changes(target, changes)
                        except Exception:
                            logger.exception(f"Error handling changes in {target.name}")
                    if not self._stop_event.is_set():
                        logger.warning(f"Watcher for {target.name} stopped; restarting")
                except Exception:
                    if self._stop_event.is_set():
                        return
                    logger.exception(f"Watcher for {target.name} crashed; restarting")
                await asyncio.sleep(0.5)
        except asyncio.CancelledError:
            return

    def start(self) -> list[asyncio.Task]:
        """Start one watch task per target (setting targets up if needed)."""
        if not self.targets:
            self.setup_all()
        if self._stop_event.is_set():
            self._stop_event = asyncio.Event()
        self._tasks = [
            asyncio.create_task(self._watch_loop(t), name=f"watch:{t.name}")
            for t in self.targets
        ]
        logger.info(f"Watching {len(self._tasks)} target(s)")
        return self._tasks

    async def wait(self) -> None:
        """Block until every watch loop has ended."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def stop(self) -> None:
        """Stop all watch loops and drop pending debounced work."""
        self._stop_event.set()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        await self.wait()
        self._tasks = []
        self.scheduler.clear()
        logger.info("Watchers stopped")
