"""
Plugin manifest model and fxmanifest.lua rendering.
"""

from .render import RENDER_ORDER, render_manifest, write_manifest
from .schema import (
    UI_ASSET_GLOB,
    UI_ENTRY_POINT,
    WEBVIEW_RESOURCE,
    ConvarCategory,
    ConvarVariable,
    DataFileSpec,
    DependencySpec,
    LevelMetaSpec,
    LoadscreenSpec,
    PluginManifest,
    default_manifest,
    webview_manifest,
)

__all__ = [
    "RENDER_ORDER",
    "UI_ASSET_GLOB",
    "UI_ENTRY_POINT",
    "WEBVIEW_RESOURCE",
    "ConvarCategory",
    "ConvarVariable",
    "DataFileSpec",
    "DependencySpec",
    "LevelMetaSpec",
    "LoadscreenSpec",
    "PluginManifest",
    "default_manifest",
    "render_manifest",
    "webview_manifest",
    "write_manifest",
]
