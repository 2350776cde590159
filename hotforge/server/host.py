"""
Resource host abstraction.

The control-plane service drives whatever process actually runs the
resources through this protocol. InMemoryResourceHost backs tests and
embedding; DirectoryResourceHost serves a deployed resource tree for
local development.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol

from hotforge.resources import ResourceResolver

logger = logging.getLogger(__name__)


class ResourceState(str, Enum):
    STARTED = "started"
    STOPPED = "stopped"
    MISSING = "missing"


class ResourceHost(Protocol):
    """What the control plane needs from the live environment."""

    @property
    def current_resource(self) -> str:
        """Name of the resource hosting the control plane itself."""
        ...

    def list_resources(self) -> list[str]:
        ...

    def state(self, name: str) -> ResourceState:
        ...

    def stop(self, name: str) -> None:
        ...

    def start(self, name: str) -> None:
        ...


@dataclass
class InMemoryResourceHost:
    """Resource host keeping state in a dict; records every stop/start."""

    resources: dict[str, ResourceState] = field(default_factory=dict)
    current_resource: str = "resource-manager"
    stopped: list[str] = field(default_factory=list)
    started: list[str] = field(default_factory=list)

    @classmethod
    def with_resources(cls, names: list[str], current_resource: str = "resource-manager") -> "InMemoryResourceHost":
        return cls(
            resources={name: ResourceState.STARTED for name in names},
            current_resource=current_resource,
        )

    def list_resources(self) -> list[str]:
        return list(self.resources)

    def state(self, name: str) -> ResourceState:
        return self.resources.get(name, ResourceState.MISSING)

    def stop(self, name: str) -> None:
        self.stopped.append(name)
        self.resources[name] = ResourceState.STOPPED

    def start(self, name: str) -> None:
        self.started.append(name)
        self.resources[name] = ResourceState.STARTED


class DirectoryResourceHost:
    """
    Resource host backed by a deployed resource tree.

    Resources are the manifests found under `root`; the tree is rescanned
    on every listing so newly deployed resources show up.
    """

    def __init__(self, root: Path, current_resource: str = "resource-manager"):
        self.root = Path(root)
        self._current_resource = current_resource
        self._states: dict[str, ResourceState] = {}

    @property
    def current_resource(self) -> str:
        return self._current_resource

    def list_resources(self) -> list[str]:
        resolver = ResourceResolver(self.root)
        resolver.scan()
        names = sorted(set(resolver.resource_map.values()))
        if self._current_resource not in names:
            names.insert(0, self._current_resource)
        return names

    def state(self, name: str) -> ResourceState:
        if name not in self.list_resources():
            return ResourceState.MISSING
        return self._states.get(name, ResourceState.STARTED)

    def stop(self, name: str) -> None:
        logger.info(f"Stopping resource {name}")
        self._states[name] = ResourceState.STOPPED

    def start(self, name: str) -> None:
        logger.info(f"Starting resource {name}")
        self._states[name] = ResourceState.STARTED
