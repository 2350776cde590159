"""
Hotforge - incremental plugin builds with hot reload of a live resource host.

Hotforge watches a tree of plugin sources, rebuilds only what a change
affects, deploys the output into a running host environment and asks the
host, over an authenticated control plane, to restart the affected
resources.

- **Build Pipeline**: Ordered async stages sharing one BuildContext
- **Debounced Scheduling**: Keyed trailing-edge debounce of rebuild work
- **Resource Identity**: Manifest-driven mapping from paths to resources
- **Control Plane**: Small FastAPI service that restarts resources

Quick Start:
    >>> from hotforge.cli import create_runtime
    >>> from hotforge.config import get_settings
    >>>
    >>> runtime = create_runtime(get_settings())
    >>> ctx = await runtime.coordinator.build()
"""

from hotforge.build import (
    BuildContext,
    BuildPipeline,
    BuildStages,
    RebuildCoordinator,
    RebuildKind,
    StageFactory,
)
from hotforge.errors import (
    CompilerError,
    ConfigurationError,
    HotforgeError,
    ManifestError,
    PluginBuildError,
    StageError,
)
from hotforge.resources import ResourceLifecycleController, ResourceResolver
from hotforge.scheduling import DebouncedTaskScheduler

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Build
    "BuildContext",
    "BuildPipeline",
    "BuildStages",
    "RebuildCoordinator",
    "RebuildKind",
    "StageFactory",
    # Resources
    "ResourceLifecycleController",
    "ResourceResolver",
    # Scheduling
    "DebouncedTaskScheduler",
    # Errors
    "CompilerError",
    "ConfigurationError",
    "HotforgeError",
    "ManifestError",
    "PluginBuildError",
    "StageError",
]
