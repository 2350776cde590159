"""
Plugin discovery.

A directory holding a `plugin.json` descriptor is a plugin. Discovery
recurses from the scan root into bracket-wrapped container folders only,
so `[misc]/example` and `[character]/[auth]/character-create` are found
but nothing inside a plugin is mistaken for another plugin.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from hotforge.errors import ManifestError
from hotforge.resources.naming import MANIFEST_FILENAME, PLUGIN_DESCRIPTOR, is_container_name

from .models import Plugin, PluginFile, PluginOutputInfo

logger = logging.getLogger(__name__)

IGNORED_DIRS: frozenset[str] = frozenset({"node_modules", ".git", "dist"})


def find_plugin_paths(directory: Path) -> list[Path]:
    """Return every plugin directory under `directory`, sorted."""
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning(f"Plugin directory does not exist: {directory}")
        return []

    found: list[Path] = []

    def visit(current: Path, is_root: bool) -> None:
        if (current / PLUGIN_DESCRIPTOR).is_file():
            found.append(current)
            return
        if not is_root and not is_container_name(current.name):
            return
        for child in sorted(current.iterdir()):
            if child.is_dir() and child.name not in IGNORED_DIRS:
                visit(child, is_root=False)

    visit(directory, is_root=True)
    return found


def read_plugin_descriptor(plugin_dir: Path) -> dict[str, Any]:
    """Read and parse a plugin's `plugin.json`."""
    descriptor = plugin_dir / PLUGIN_DESCRIPTOR
    try:
        data = json.loads(descriptor.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ManifestError(plugin_dir.name, f"{PLUGIN_DESCRIPTOR} not found") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ManifestError(plugin_dir.name, f"Invalid {PLUGIN_DESCRIPTOR}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestError(plugin_dir.name, f"{PLUGIN_DESCRIPTOR} must contain an object")
    return data


def list_plugin_files(plugin_dir: Path) -> list[PluginFile]:
    """List every file under a plugin, skipping dependency and output folders."""
    files: list[PluginFile] = []
    for path in sorted(plugin_dir.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(plugin_dir)
        if any(part in IGNORED_DIRS for part in relative.parts[:-1]):
            continue
        files.append(
            PluginFile(
                name=path.name,
                path_from_plugin_dir=relative.as_posix(),
                is_manifest_file=relative.as_posix() == PLUGIN_DESCRIPTOR,
                path=path,
            )
        )
    return files


def load_plugin(plugin_dir: Path, scan_root: Path) -> Plugin:
    """
    Parse one plugin directory.

    Raises:
        ManifestError: If the descriptor is missing or malformed
    """
    plugin_dir = Path(plugin_dir).resolve()
    scan_root = Path(scan_root).resolve()
    data = read_plugin_descriptor(plugin_dir)

    name = data.get("name") or plugin_dir.name
    if plugin_dir == scan_root:
        relative = name
    else:
        relative = plugin_dir.relative_to(scan_root).as_posix()

    return Plugin(
        name=str(name),
        path_from_plugins_dir=relative,
        has_ui_page=(plugin_dir / "html" / "Page.tsx").is_file(),
        path=plugin_dir,
        files=list_plugin_files(plugin_dir),
    )


def scan_plugins(directory: Path) -> list[Plugin]:
    """Discover and parse all plugins; invalid ones are logged and skipped."""
    plugins: list[Plugin] = []
    for plugin_dir in find_plugin_paths(directory):
        try:
            plugins.append(load_plugin(plugin_dir, directory))
        except ManifestError as e:
            logger.error(f"Skipping plugin: {e}")
    logger.debug(f"Discovered {len(plugins)} plugin(s) under {directory}")
    return plugins


async def discover_plugins(directory: Path) -> list[Plugin]:
    """Async wrapper around scan_plugins; the scan runs off the event loop."""
    return await asyncio.to_thread(scan_plugins, directory)


def output_info(plugin: Plugin, dist_dir: Path) -> PluginOutputInfo:
    """Map a plugin to its output directory; the core plugin always lands in `core`."""
    relative = "core" if plugin.is_core else plugin.path_from_plugins_dir
    output_dir = Path(dist_dir) / relative
    return PluginOutputInfo(
        relative_path=relative,
        output_dir=output_dir,
        manifest_path=output_dir / MANIFEST_FILENAME,
    )
