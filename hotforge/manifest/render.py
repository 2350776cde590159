"""
fxmanifest.lua rendering.

Keys are emitted in a fixed order. List keys that the host reads one
entry per directive (exports, provide, dependencies) become one line per
entry; script and file lists become braced blocks. Keys the host does
not understand (extras from plugin.json) are kept in the model but never
rendered.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from .schema import (
    ConvarCategory,
    DataFileSpec,
    DependencySpec,
    LevelMetaSpec,
    LoadscreenSpec,
    PluginManifest,
)

logger = logging.getLogger(__name__)


def _quote(value: Any) -> str:
    text = str(value).replace("\\", "/").replace("'", "\\'")
    return f"'{text}'"


def _scalar(key: str) -> Callable[[Any], str]:
    return lambda value: f"{key} {_quote(value)}"


def _block(key: str) -> Callable[[Any], str]:
    def render(values: list[str]) -> str:
        lines = [f"{key} {{"]
        lines.extend(f"    {_quote(v)}," for v in values)
        lines.append("}")
        return "\n".join(lines)

    return render


def _each(key: str) -> Callable[[Any], str]:
    return lambda values: "\n".join(f"{key} {_quote(v)}" for v in values)


def _flag(key: str) -> Callable[[Any], str]:
    return lambda value: f"{key} 'yes'" if value else ""


def _games(values: list[str]) -> str:
    return "games { " + ", ".join(_quote(v) for v in values) + " }"


def _level_meta(value: LevelMetaSpec) -> str:
    lines = []
    for position in ("before", "after", "replace"):
        path = getattr(value, position)
        if path:
            lines.append(f"{position}_level_meta {_quote(path)}")
    return "\n".join(lines)


def _data_files(values: list[DataFileSpec]) -> str:
    return "\n".join(
        f"data_file {_quote(entry.type)} {_quote(path)}" for entry in values for path in entry.paths
    )


def _loadscreen(value: LoadscreenSpec) -> str:
    lines = []
    if value.page:
        lines.append(f"loadscreen {_quote(value.page)}")
    if value.manual_shutdown:
        lines.append("loadscreen_manual_shutdown 'yes'")
    return "\n".join(lines)


def _dependencies(values: list[str | DependencySpec]) -> str:
    lines = []
    for dependency in values:
        if isinstance(dependency, str):
            lines.append(f"dependency {_quote(dependency)}")
        elif dependency.server:
            lines.append(f"dependency {_quote(dependency.resource)} /server:{dependency.server}")
        else:
            lines.append(f"dependency {_quote(dependency.resource)}")
    return "\n".join(lines)


def _experimental(value: dict[str, Any]) -> str:
    lines = []
    if value.get("use_fxv2_oal"):
        lines.append("use_experimental_fxv2_oal 'yes'")
    if value.get("clr_disable_task_scheduler"):
        lines.append("clr_disable_task_scheduler 'yes'")
    return "\n".join(lines)


def _convar_default(value: Any) -> str:
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return _quote(json.dumps(value))


def _convars(value: dict[str, ConvarCategory]) -> str:
    sections = []
    for key, category in value.items():
        lines = [f"convar_category {_quote(category.category or key)} {{"]
        for variable in category.variables:
            lines.append("    {")
            lines.append(f"        name = {_quote(variable.name)},")
            lines.append(f"        type = {_quote(variable.type)},")
            lines.append(f"        default = {_convar_default(variable.default)}")
            lines.append("    },")
        lines.append("}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


RENDER_ORDER: list[tuple[str, Callable[[Any], str]]] = [
    ("fx_version", _scalar("fx_version")),
    ("games", _games),
    ("author", _scalar("author")),
    ("description", _scalar("description")),
    ("version", _scalar("version")),
    ("client_scripts", _block("client_scripts")),
    ("server_scripts", _block("server_scripts")),
    ("shared_scripts", _block("shared_scripts")),
    ("exports", _each("export")),
    ("server_exports", _each("server_export")),
    ("ui_page", _scalar("ui_page")),
    ("files", _block("files")),
    ("is_map", _flag("this_is_a_map")),
    ("server_only", _flag("server_only")),
    ("lua54", _flag("lua54")),
    ("provide", _each("provide")),
    ("level_meta", _level_meta),
    ("data_files", _data_files),
    ("loadscreen", _loadscreen),
    ("loadscreen_manual_shutdown", _flag("loadscreen_manual_shutdown")),
    ("dependencies", _dependencies),
    ("experimental", _experimental),
    ("convars", _convars),
]


def render_manifest(manifest: PluginManifest) -> str:
    """Render a manifest as fxmanifest.lua source."""
    sections = [f"-- Generated manifest for {manifest.name or 'unnamed plugin'}"]
    if manifest.name:
        sections.append(f"name {_quote(manifest.name)}")

    for key, formatter in RENDER_ORDER:
        value = getattr(manifest, key)
        if value is None:
            continue
        rendered = formatter(value)
        if rendered:
            sections.append(rendered)

    return "\n\n".join(sections) + "\n"


def write_manifest(manifest: PluginManifest, path: Path) -> Path:
    """Render and write a manifest, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_manifest(manifest), encoding="utf-8")
    logger.debug(f"Wrote manifest for {manifest.name or 'unnamed plugin'} to {path}")
    return path
