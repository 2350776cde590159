"""
hotforge command line.

    hotforge build [--no-clean]
    hotforge dev [--watch] [--reload]
    hotforge serve [--host HOST] [--port PORT]
    hotforge resources
    hotforge restart [NAME]
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Annotated, Optional

import typer

from hotforge.build import (
    BuildContext,
    BuildStages,
    EsbuildCompiler,
    FileProcessor,
    PluginBuilder,
    RebuildCoordinator,
    StageFactory,
    ViteUiPageBuilder,
)
from hotforge.config import HotforgeSettings, get_settings
from hotforge.errors import ConfigurationError, StageError
from hotforge.observability import JSONLogger, configure_logging
from hotforge.resources import ControlPlaneClient, ControlPlaneConfig, ResourceLifecycleController
from hotforge.scheduling import DebouncedTaskScheduler, DebouncePolicy
from hotforge.watch import WatchManager

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Incremental plugin builds with hot reload of a live resource host.",
    no_args_is_help=True,
    add_completion=False,
)


@dataclass
class DevRuntime:
    """Collaborators of one build or dev session."""

    settings: HotforgeSettings
    scheduler: DebouncedTaskScheduler
    lifecycle: ResourceLifecycleController
    coordinator: RebuildCoordinator

    def watch_manager(self) -> WatchManager:
        return WatchManager(
            plugins_dir=self.settings.resolve(self.settings.plugins_dir),
            core_dir=self.settings.resolve(self.settings.core_dir),
            dist_dir=self.settings.resolve(self.settings.dist_dir),
            webview_dir=self.settings.resolve(self.settings.webview_dir),
            coordinator=self.coordinator,
            scheduler=self.scheduler,
            lifecycle=self.lifecycle,
        )

    async def close(self) -> None:
        self.scheduler.clear()
        await self.lifecycle.close()


def create_runtime(settings: HotforgeSettings, *, watch: bool = False) -> DevRuntime:
    """Wire compilers, stages, lifecycle and coordinator from settings."""
    config = settings.build_config()
    scheduler = DebouncedTaskScheduler(DebouncePolicy.from_settings(settings))
    lifecycle = ResourceLifecycleController.from_settings(settings, scheduler)

    options = config.options
    stages = BuildStages(
        PluginBuilder(FileProcessor(EsbuildCompiler(), options)),
        ui_builder=ViteUiPageBuilder(config.paths.webview_dir),
        lifecycle=lifecycle,
    )
    base_context = BuildContext.from_config(
        config,
        watch_enabled=watch,
        logger=JSONLogger("hotforge.build"),
    )
    coordinator = RebuildCoordinator(StageFactory(stages), base_context, lifecycle=lifecycle)
    return DevRuntime(settings, scheduler, lifecycle, coordinator)


def _settings() -> HotforgeSettings:
    try:
        return get_settings()
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


def _control_plane_client(settings: HotforgeSettings) -> ControlPlaneClient:
    reloader = settings.build_config().reloader
    return ControlPlaneClient(
        ControlPlaneConfig(
            base_url=reloader.base_url,
            api_key=reloader.api_key.get_secret_value(),
            timeout=settings.request_timeout,
        )
    )


# =============================================================================
# Build Commands
# =============================================================================


async def _build_once(runtime: DevRuntime, clean: bool) -> bool:
    try:
        ctx = await runtime.coordinator.build(clean=clean)
    except StageError as e:
        logger.error(f"Build failed: {e}")
        return False
    finally:
        await runtime.close()
    if ctx is not None:
        logger.info(f"Build finished: {ctx.summary()}")
    return ctx is not None


@app.command()
def build(
    clean: Annotated[
        bool,
        typer.Option("--clean/--no-clean", help="Remove the output directory first."),
    ] = True,
) -> None:
    """Run the full build once."""
    settings = _settings()
    configure_logging(settings.log_level)
    if not asyncio.run(_build_once(create_runtime(settings), clean)):
        raise typer.Exit(code=1)


async def _develop(runtime: DevRuntime, watch: bool) -> None:
    try:
        await runtime.coordinator.build()
    except StageError as e:
        logger.error(f"Initial build failed: {e}")
        if not watch:
            raise

    if not watch:
        return

    manager = runtime.watch_manager()
    manager.start()
    logger.info("Watching for changes, press Ctrl+C to stop")
    try:
        await manager.wait()
    finally:
        await manager.stop()


@app.command()
def dev(
    watch: Annotated[bool, typer.Option("--watch", "-w", help="Keep watching sources after the build.")] = False,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Restart rebuilt resources through the control plane."),
    ] = False,
) -> None:
    """Build, then optionally watch and hot-reload."""
    settings = _settings()
    if reload:
        settings = settings.model_copy(update={"reloader_enabled": True})
    configure_logging(settings.log_level)

    runtime = create_runtime(settings, watch=watch)

    async def session() -> None:
        try:
            await _develop(runtime, watch)
        finally:
            await runtime.close()

    try:
        asyncio.run(session())
    except StageError:
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logger.info("Stopped")


# =============================================================================
# Control Plane Commands
# =============================================================================


@app.command()
def serve(
    host: Annotated[Optional[str], typer.Option(help="Bind address.")] = None,
    port: Annotated[Optional[int], typer.Option(help="Bind port.")] = None,
) -> None:
    """Run the control-plane service."""
    import uvicorn

    from hotforge.server import create_app_from_settings

    settings = _settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app_from_settings(settings),
        host=host or settings.control_plane_host,
        port=port or settings.control_plane_port,
    )


async def _list_resources(settings: HotforgeSettings):
    async with _control_plane_client(settings) as client:
        return await client.list_resources()


@app.command()
def resources() -> None:
    """List resources known to the control plane."""
    settings = _settings()
    configure_logging(settings.log_level)
    result = asyncio.run(_list_resources(settings))
    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    for name in result.data.get("resources", []):
        typer.echo(name)


async def _restart(settings: HotforgeSettings, name: str | None):
    async with _control_plane_client(settings) as client:
        if name:
            return await client.restart(name)
        return await client.restart_all()


@app.command()
def restart(
    name: Annotated[Optional[str], typer.Argument(help="Resource to restart; all when omitted.")] = None,
) -> None:
    """Restart one resource, or every resource, through the control plane."""
    settings = _settings()
    configure_logging(settings.log_level)
    result = asyncio.run(_restart(settings, name))
    if not result.success:
        typer.echo(f"Error: {result.error}", err=True)
        raise typer.Exit(code=1)
    typer.echo(result.data.get("message", "ok"))


if __name__ == "__main__":
    app()
