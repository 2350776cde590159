"""
Configuration for hotforge.

Usage:
    from hotforge.config import get_settings

    settings = get_settings()
    config = settings.build_config()
"""

from .settings import (
    GENERATED_DIR_NAME,
    BuildConfig,
    BuildOptions,
    BuildPaths,
    HotforgeSettings,
    ReloaderConfig,
    get_settings,
    load_settings,
)

__all__ = [
    "GENERATED_DIR_NAME",
    "BuildConfig",
    "BuildOptions",
    "BuildPaths",
    "HotforgeSettings",
    "ReloaderConfig",
    "get_settings",
    "load_settings",
]
