"""
Directory naming conventions shared by discovery, resolution and restarts.

A resource directory may sit under bracket-wrapped container folders
(`[misc]/example`) and contain fixed structural subdirectories
(`client`, `server`, ...). Neither kind of name is ever a resource.
"""

from __future__ import annotations

MANIFEST_FILENAME = "fxmanifest.lua"
PLUGIN_DESCRIPTOR = "plugin.json"

STRUCTURAL_SUBDIRS: frozenset[str] = frozenset(
    {"client", "server", "shared", "html", "translations", "assets"}
)


def is_container_name(name: str) -> bool:
    """True for bracket-wrapped grouping folders such as `[misc]`."""
    return len(name) >= 2 and name.startswith("[") and name.endswith("]")


def is_structural_name(name: str) -> bool:
    return name in STRUCTURAL_SUBDIRS


def is_resource_name(name: str | None) -> bool:
    """True when a name could denote a real, restartable resource."""
    if not name or not name.strip():
        return False
    return not is_container_name(name) and not is_structural_name(name)
