"""
Build stages and the stage lists for each kind of trigger.

Each stage is an async callable taking the run's BuildContext. A stage
raising aborts the run; a single plugin failing inside a stage does not,
it is logged and the stage carries on with the next plugin.

Stage lists:
    full:    clean?, build_core_plugins, build_plugins, build_ui_pages,
             fix_nested_plugins, deploy_resources
    plugin:  build_plugin, build_ui_pages?, fix_nested_plugins, deploy_resources
    core:    build_core_plugins, fix_nested_plugins, deploy_resources
    webview: build_core_plugins, build_plugins, build_ui_pages,
             fix_nested_plugins, deploy_resources
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from hotforge.errors import CompilerError, ManifestError, PluginBuildError
from hotforge.manifest import WEBVIEW_RESOURCE, default_manifest, webview_manifest, write_manifest
from hotforge.plugins import Plugin, discover_plugins, load_plugin, output_info
from hotforge.resources import (
    MANIFEST_FILENAME,
    ResourceLifecycleController,
    is_container_name,
    is_structural_name,
)

from .compiler import UiPageBuilder
from .context import BuildContext
from .pipeline import BuildPipeline, StageHandler
from .plugin_builder import PluginBuilder

logger = logging.getLogger(__name__)

SCRIPT_SUBDIRS = ("client", "server", "shared")
STRAY_TRANSLATION_BUNDLES = ("index.js", "index.js.map")


class RebuildKind(str, Enum):
    """What changed, and therefore which stages must run again."""

    PLUGIN = "plugin"
    CORE = "core"
    WEBVIEW = "webview"


# =============================================================================
# Output Layout Fixes
# =============================================================================


@dataclass(slots=True)
class LayoutFixReport:
    manifests_added: list[str]
    bundles_removed: list[str]
    webview_manifest: bool = False


def _has_manifest_above(directory: Path, dist_dir: Path) -> bool:
    current = directory.parent
    while current != dist_dir and current != current.parent:
        if (current / MANIFEST_FILENAME).is_file():
            return True
        current = current.parent
    return False


def _needs_default_manifest(directory: Path, dist_dir: Path) -> bool:
    if is_container_name(directory.name) or is_structural_name(directory.name):
        return False
    if directory.name == WEBVIEW_RESOURCE and directory.parent == dist_dir:
        return False
    if (directory / MANIFEST_FILENAME).is_file():
        return False
    relative = directory.relative_to(dist_dir)
    if any(is_structural_name(part) for part in relative.parts):
        return False
    if not any((directory / sub).is_dir() for sub in SCRIPT_SUBDIRS):
        return False
    return not _has_manifest_above(directory, dist_dir)


def fix_output_layout(dist_dir: Path) -> LayoutFixReport:
    """
    Repair known quirks of the output tree.

    - resource directories holding compiled scripts but no manifest get
      a default one
    - `translations/index.js` bundles (and their maps) are removed, the
      translation tables are loaded individually
    - the shared webview resource gets its manifest
    """
    report = LayoutFixReport(manifests_added=[], bundles_removed=[])
    if not dist_dir.is_dir():
        return report

    for directory in sorted(p for p in dist_dir.rglob("*") if p.is_dir()):
        if _needs_default_manifest(directory, dist_dir):
            write_manifest(default_manifest(directory.name), directory / MANIFEST_FILENAME)
            report.manifests_added.append(directory.relative_to(dist_dir).as_posix())

    for translations in sorted(dist_dir.rglob("translations")):
        if not translations.is_dir():
            continue
        for bundle in STRAY_TRANSLATION_BUNDLES:
            target = translations / bundle
            if target.is_file():
                target.unlink()
                report.bundles_removed.append(target.relative_to(dist_dir).as_posix())

    webview_dir = dist_dir / WEBVIEW_RESOURCE
    if webview_dir.is_dir():
        write_manifest(webview_manifest(), webview_dir / MANIFEST_FILENAME)
        report.webview_manifest = True

    return report


# =============================================================================
# Stages
# =============================================================================


class BuildStages:
    """
    Stage handlers bound to their collaborators.

    Args:
        builder: Builds one plugin's output and manifest
        ui_builder: Builds UI pages; None disables UI page builds
        lifecycle: Deploys output into the host; None disables deployment
    """

    def __init__(
        self,
        builder: PluginBuilder,
        ui_builder: UiPageBuilder | None = None,
        lifecycle: ResourceLifecycleController | None = None,
    ):
        self.builder = builder
        self.ui_builder = ui_builder
        self.lifecycle = lifecycle

    async def _build_one(self, ctx: BuildContext, plugin: Plugin) -> bool:
        try:
            built = await self.builder.build(plugin, ctx.dist_dir)
        except PluginBuildError as e:
            ctx.logger.error(
                "Plugin build failed",
                plugin=e.plugin_name,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False
        ctx.built.append(built)
        return True

    async def _build_all(self, ctx: BuildContext, plugins: list[Plugin], group: str) -> None:
        ctx.logger.info(f"Building {group} plugins", count=len(plugins))
        succeeded = 0
        for plugin in plugins:
            if await self._build_one(ctx, plugin):
                succeeded += 1
        ctx.logger.info(
            f"Built {group} plugins",
            succeeded=succeeded,
            failed=len(plugins) - succeeded,
        )

    async def clean(self, ctx: BuildContext) -> None:
        if ctx.dist_dir.exists():
            await asyncio.to_thread(shutil.rmtree, ctx.dist_dir)
        ctx.dist_dir.mkdir(parents=True, exist_ok=True)
        ctx.logger.info("Output directory cleaned", dist_dir=str(ctx.dist_dir))

    async def build_core_plugins(self, ctx: BuildContext) -> None:
        ctx.core_plugins = await discover_plugins(ctx.core_dir)
        await self._build_all(ctx, ctx.core_plugins, "core")

    async def build_plugins(self, ctx: BuildContext) -> None:
        ctx.plugins = await discover_plugins(ctx.plugins_dir)
        await self._build_all(ctx, ctx.plugins, "regular")

    def build_plugin(self, plugin_dir: Path) -> StageHandler:
        """Stage building the single plugin rooted at `plugin_dir`."""

        async def build_single_plugin(ctx: BuildContext) -> None:
            try:
                plugin = await asyncio.to_thread(load_plugin, plugin_dir, ctx.plugins_dir)
            except ManifestError as e:
                ctx.logger.error("Plugin could not be loaded", plugin_dir=str(plugin_dir), error_message=str(e))
                return
            ctx.plugins = [plugin]
            await self._build_one(ctx, plugin)

        return build_single_plugin

    async def build_ui_pages(self, ctx: BuildContext) -> None:
        ui_plugins = [p for p in ctx.plugins if p.has_ui_page]
        if not ui_plugins:
            ctx.logger.info("No plugins with UI pages, skipping UI build")
            return
        if self.ui_builder is None:
            ctx.logger.warning("UI page builder not configured", plugins=[p.name for p in ui_plugins])
            return

        built_names = {b.name for b in ctx.built}
        for plugin in ui_plugins:
            if plugin.name not in built_names:
                ctx.logger.warning("Skipping UI page of unbuilt plugin", plugin=plugin.name)
                continue
            info = output_info(plugin, ctx.dist_dir)
            try:
                await self.ui_builder.build(plugin, info.output_dir, ctx.options)
            except (CompilerError, OSError) as e:
                ctx.logger.error(
                    "UI page build failed",
                    plugin=plugin.name,
                    error_type=type(e).__name__,
                    error_message=str(e),
                )

    async def fix_nested_plugins(self, ctx: BuildContext) -> None:
        report = await asyncio.to_thread(fix_output_layout, ctx.dist_dir)
        ctx.logger.info(
            "Output layout fixed",
            manifests_added=report.manifests_added,
            bundles_removed=report.bundles_removed,
            webview_manifest=report.webview_manifest,
        )

    async def deploy_resources(self, ctx: BuildContext) -> None:
        if self.lifecycle is None:
            ctx.logger.info("Deployment disabled")
            return
        ctx.deployed_to = await self.lifecycle.deploy(ctx.dist_dir)


# =============================================================================
# Stage Lists
# =============================================================================


class StageFactory:
    """Builds the pipeline for a full build or for one kind of rebuild."""

    def __init__(self, stages: BuildStages):
        self.stages = stages

    def full_build(self, clean: bool = True) -> BuildPipeline:
        s = self.stages
        return (
            BuildPipeline()
            .add_stage_if(clean, "clean", s.clean)
            .add_stage("build_core_plugins", s.build_core_plugins)
            .add_stage("build_plugins", s.build_plugins)
            .add_stage("build_ui_pages", s.build_ui_pages)
            .add_stage("fix_nested_plugins", s.fix_nested_plugins)
            .add_stage("deploy_resources", s.deploy_resources)
        )

    def for_trigger(self, kind: RebuildKind, plugin_dir: Path | None = None) -> BuildPipeline:
        s = self.stages
        pipeline = BuildPipeline()

        if kind is RebuildKind.PLUGIN:
            if plugin_dir is None:
                raise ValueError("A plugin rebuild needs the plugin directory")
            has_ui_page = (Path(plugin_dir) / "html" / "Page.tsx").is_file()
            pipeline.add_stage(f"build_plugin:{Path(plugin_dir).name}", s.build_plugin(Path(plugin_dir)))
            pipeline.add_stage_if(has_ui_page, "build_ui_pages", s.build_ui_pages)
        elif kind is RebuildKind.CORE:
            pipeline.add_stage("build_core_plugins", s.build_core_plugins)
        elif kind is RebuildKind.WEBVIEW:
            (
                pipeline.add_stage("build_core_plugins", s.build_core_plugins)
                .add_stage("build_plugins", s.build_plugins)
                .add_stage("build_ui_pages", s.build_ui_pages)
            )
        else:
            raise ValueError(f"Unknown rebuild kind: {kind}")

        return (
            pipeline.add_stage("fix_nested_plugins", s.fix_nested_plugins)
            .add_stage("deploy_resources", s.deploy_resources)
        )
