"""
Plugin data model.

Plugins, their files and processed outputs are created fresh on every
build pass and discarded afterwards; nothing here is shared between runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class FileCategory(str, Enum):
    """Which script list of the manifest a processed file belongs to."""

    CLIENT = "client"
    SERVER = "server"
    SHARED = "shared"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class PluginFile:
    """One file under a plugin directory."""

    name: str
    path_from_plugin_dir: str
    is_manifest_file: bool
    path: Path

    @property
    def suffix(self) -> str:
        return self.path.suffix


@dataclass(slots=True)
class Plugin:
    """
    A buildable plugin discovered by its `plugin.json` descriptor.

    Attributes:
        name: Declared plugin name (falls back to the directory name)
        path_from_plugins_dir: POSIX path relative to the scanned root,
            e.g. "[misc]/example"
        has_ui_page: Whether the plugin ships `html/Page.tsx`
        path: Absolute plugin directory
        files: Every file under the plugin, in sorted order
    """

    name: str
    path_from_plugins_dir: str
    has_ui_page: bool
    path: Path
    files: list[PluginFile] = field(default_factory=list)

    @property
    def is_core(self) -> bool:
        return self.name == "core"

    @property
    def ui_page(self) -> Path:
        return self.path / "html" / "Page.tsx"


@dataclass(frozen=True, slots=True)
class ProcessedFile:
    """Result of compiling or copying one plugin file."""

    source_path: Path
    output_path: Path
    category: FileCategory


@dataclass(frozen=True, slots=True)
class PluginOutputInfo:
    """Where a plugin's build output lands."""

    relative_path: str
    output_dir: Path
    manifest_path: Path


@dataclass(slots=True)
class BuiltPlugin:
    """A plugin whose output and manifest were written successfully."""

    plugin: Plugin
    output: PluginOutputInfo
    processed: list[ProcessedFile] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.plugin.name
