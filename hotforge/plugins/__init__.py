"""
Plugin discovery and data model.
"""

from .discovery import (
    IGNORED_DIRS,
    discover_plugins,
    find_plugin_paths,
    list_plugin_files,
    load_plugin,
    output_info,
    read_plugin_descriptor,
    scan_plugins,
)
from .models import (
    BuiltPlugin,
    FileCategory,
    Plugin,
    PluginFile,
    PluginOutputInfo,
    ProcessedFile,
)

__all__ = [
    # Models
    "BuiltPlugin",
    "FileCategory",
    "Plugin",
    "PluginFile",
    "PluginOutputInfo",
    "ProcessedFile",
    # Discovery
    "IGNORED_DIRS",
    "discover_plugins",
    "find_plugin_paths",
    "list_plugin_files",
    "load_plugin",
    "output_info",
    "read_plugin_descriptor",
    "scan_plugins",
]
