"""
Control-plane service hosted next to the live resources.
"""

from .app import BANNER, CORS_HEADERS, create_app, create_app_from_settings, is_authorized
from .artifact_watcher import ArtifactWatcher
from .host import DirectoryResourceHost, InMemoryResourceHost, ResourceHost, ResourceState
from .restart import DEFAULT_START_DELAY, ResourceRestarter, RestartAllResult, clean_resource_name

__all__ = [
    "BANNER",
    "CORS_HEADERS",
    "DEFAULT_START_DELAY",
    "ArtifactWatcher",
    "DirectoryResourceHost",
    "InMemoryResourceHost",
    "ResourceHost",
    "ResourceRestarter",
    "ResourceState",
    "RestartAllResult",
    "clean_resource_name",
    "create_app",
    "create_app_from_settings",
    "is_authorized",
]
