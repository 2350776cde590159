"""
Per-plugin build.

Reads the plugin descriptor, compiles every file concurrently, points the
manifest's script lists at the compiled output and writes fxmanifest.lua
into the plugin's output directory. Any failure is raised as a
PluginBuildError so the calling stage can log it and move on to the next
plugin.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from hotforge.errors import CompilerError, ManifestError, PluginBuildError
from hotforge.manifest import WEBVIEW_RESOURCE, PluginManifest, write_manifest
from hotforge.plugins import BuiltPlugin, FileCategory, Plugin, output_info, read_plugin_descriptor

from .compiler import FileProcessor, categorize_outputs

logger = logging.getLogger(__name__)


def load_manifest(plugin: Plugin) -> PluginManifest:
    """
    Load a plugin's descriptor into the manifest model.

    Raises:
        ManifestError: If the descriptor is missing or does not validate
    """
    data = read_plugin_descriptor(plugin.path)
    try:
        return PluginManifest.from_dict(data)
    except ValidationError as e:
        raise ManifestError(plugin.name, f"Invalid plugin.json: {e}") from e


def prepare_manifest(plugin: Plugin, manifest: PluginManifest, generated: dict[FileCategory, list[str]]) -> PluginManifest:
    """Apply compiled outputs and UI wiring to a descriptor."""
    manifest = manifest.with_generated_scripts(
        client=generated[FileCategory.CLIENT],
        server=generated[FileCategory.SERVER],
        shared=generated[FileCategory.SHARED],
    )
    if plugin.has_ui_page and not plugin.is_core:
        manifest = manifest.with_ui_assets().with_dependency(WEBVIEW_RESOURCE)
    return manifest


class PluginBuilder:
    """Builds one plugin into `<dist>/<plugin path>`."""

    def __init__(self, processor: FileProcessor):
        self.processor = processor

    async def build(self, plugin: Plugin, dist_dir: Path) -> BuiltPlugin:
        """
        Build a single plugin.

        Raises:
            PluginBuildError: On descriptor, compiler or filesystem errors
        """
        info = output_info(plugin, dist_dir)
        manifest = load_manifest(plugin)

        logger.debug(f"Building plugin {plugin.name} ({len(plugin.files)} files) -> {info.output_dir}")
        try:
            results = await asyncio.gather(
                *(
                    self.processor.process(f, info.output_dir, has_ui_page=plugin.has_ui_page)
                    for f in plugin.files
                )
            )
        except CompilerError as e:
            raise PluginBuildError(plugin.name, f"Compilation failed: {e}") from e
        except OSError as e:
            raise PluginBuildError(plugin.name, f"File processing failed: {e}") from e

        processed = [r for r in results if r is not None]
        manifest = prepare_manifest(plugin, manifest, categorize_outputs(processed))

        try:
            write_manifest(manifest, info.manifest_path)
        except OSError as e:
            raise PluginBuildError(plugin.name, f"Could not write manifest: {e}") from e

        logger.info(f"Built plugin {plugin.name}: {len(processed)} file(s)")
        return BuiltPlugin(plugin=plugin, output=info, processed=processed)
