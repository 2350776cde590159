"""
Resource identity, deployment and restarts.
"""

from .client import ControlPlaneClient, ControlPlaneConfig, ControlPlaneResult
from .identity import (
    MANIFEST_RULES,
    ManifestProbe,
    ResourceResolver,
    apply_rules,
    manifest_declared_name,
    manifest_directory_name,
    nearest_named_segment,
    parse_declared_name,
    read_manifest_text,
    root_fallback_name,
)
from .lifecycle import DEFAULT_COOLDOWN_MS, ResourceLifecycleController
from .naming import (
    MANIFEST_FILENAME,
    PLUGIN_DESCRIPTOR,
    STRUCTURAL_SUBDIRS,
    is_container_name,
    is_resource_name,
    is_structural_name,
)

__all__ = [
    # Naming
    "MANIFEST_FILENAME",
    "PLUGIN_DESCRIPTOR",
    "STRUCTURAL_SUBDIRS",
    "is_container_name",
    "is_resource_name",
    "is_structural_name",
    # Identity
    "MANIFEST_RULES",
    "ManifestProbe",
    "ResourceResolver",
    "apply_rules",
    "manifest_declared_name",
    "manifest_directory_name",
    "nearest_named_segment",
    "parse_declared_name",
    "read_manifest_text",
    "root_fallback_name",
    # Control plane
    "ControlPlaneClient",
    "ControlPlaneConfig",
    "ControlPlaneResult",
    # Lifecycle
    "DEFAULT_COOLDOWN_MS",
    "ResourceLifecycleController",
]
