"""
Resource identity resolution.

Maps a filesystem path to the logical resource it belongs to. The policy
is a short chain of pure rules tried in order against the nearest
directory that holds a manifest; the first rule returning a usable name
wins:

1. manifest_declared_name: the `name` declared inside fxmanifest.lua
2. manifest_directory_name: the manifest directory's own name
3. nearest_named_segment: for container directories, the nearest
   ancestor segment (below the root) that is neither a container nor a
   structural subdirectory

When no manifest exists up to the root, root_fallback_name uses the first
usable directory segment relative to the root.

Resolved names are memoized per absolute directory (the ResourceMap), so
resolving the same path twice never touches the filesystem again.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from .naming import MANIFEST_FILENAME, is_container_name, is_resource_name, is_structural_name

logger = logging.getLogger(__name__)

ManifestReader = Callable[[Path], "str | None"]
"""Return the manifest text of a directory, or None if it has no manifest."""

_NAME_PATTERN = re.compile(r"""^\s*name\s*=?\s*["']([^"']+)["']""", re.MULTILINE)


def read_manifest_text(directory: Path) -> str | None:
    manifest = directory / MANIFEST_FILENAME
    try:
        return manifest.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.error(f"Error reading manifest {manifest}: {e}")
        return None


def parse_declared_name(manifest_text: str) -> str | None:
    """Extract a `name 'x'` / `name = "x"` declaration."""
    match = _NAME_PATTERN.search(manifest_text)
    return match.group(1).strip() if match else None


# =============================================================================
# Resolution Rules
# =============================================================================


@dataclass(frozen=True, slots=True)
class ManifestProbe:
    """A directory known to hold a manifest, seen from the resolver root."""

    directory: Path
    root: Path
    declared_name: str | None

    @property
    def segments_below_root(self) -> tuple[str, ...]:
        try:
            return self.directory.relative_to(self.root).parts
        except ValueError:
            return self.directory.parts


def manifest_declared_name(probe: ManifestProbe) -> str | None:
    return probe.declared_name


def manifest_directory_name(probe: ManifestProbe) -> str | None:
    name = probe.directory.name
    if is_container_name(name):
        return None
    return name


def nearest_named_segment(probe: ManifestProbe) -> str | None:
    if not is_container_name(probe.directory.name):
        return None
    # Walk ancestors backward, never above the root.
    for segment in reversed(probe.segments_below_root[:-1]):
        if is_resource_name(segment):
            return segment
    return None


MANIFEST_RULES: tuple[Callable[[ManifestProbe], "str | None"], ...] = (
    manifest_declared_name,
    manifest_directory_name,
    nearest_named_segment,
)


def root_fallback_name(path: Path, root: Path) -> str | None:
    """First usable directory segment of `path` relative to `root`."""
    try:
        relative = path.relative_to(root)
    except ValueError:
        return None
    # Directory segments only; the file name is never a resource.
    for segment in relative.parts[:-1]:
        if is_resource_name(segment):
            return segment
    return None


def apply_rules(probe: ManifestProbe) -> str | None:
    for rule in MANIFEST_RULES:
        name = rule(probe)
        if is_resource_name(name):
            return name
    return None


# =============================================================================
# Resolver
# =============================================================================


class ResourceResolver:
    """
    Resolves resource names for paths under a root directory.

    Args:
        root: Boundary of the upward manifest search (exclusive)
        manifest_reader: Reads a directory's manifest text; injectable
            so tests can observe filesystem access
    """

    def __init__(
        self,
        root: Path,
        manifest_reader: ManifestReader = read_manifest_text,
    ):
        self.root = Path(root).resolve()
        self._read_manifest = manifest_reader
        self._resource_map: dict[Path, str] = {}

    @property
    def resource_map(self) -> dict[Path, str]:
        """Snapshot of the directory -> resource name cache."""
        return dict(self._resource_map)

    def __len__(self) -> int:
        return len(self._resource_map)

    def _ancestors(self, start: Path) -> Iterator[Path]:
        current = start
        while current != self.root and current != current.parent:
            yield current
            current = current.parent

    def _probe(self, directory: Path) -> ManifestProbe | None:
        text = self._read_manifest(directory)
        if text is None:
            return None
        return ManifestProbe(
            directory=directory,
            root=self.root,
            declared_name=parse_declared_name(text),
        )

    def _remember(self, directories: list[Path], name: str) -> str:
        for directory in directories:
            self._resource_map.setdefault(directory, name)
        return name

    def resolve(self, path: Path | str) -> str | None:
        """
        Resolve the resource a path belongs to.

        Returns:
            The resource name, or None when no usable name exists
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        path = path.resolve()
        start = path.parent

        visited: list[Path] = []
        for directory in self._ancestors(start):
            cached = self._resource_map.get(directory)
            if cached is not None:
                return self._remember(visited, cached)

            visited.append(directory)
            if is_structural_name(directory.name):
                continue

            probe = self._probe(directory)
            if probe is None:
                continue

            name = apply_rules(probe)
            if name is not None:
                logger.debug(f"Resolved {path} -> {name} (manifest at {directory})")
                return self._remember(visited, name)

        name = root_fallback_name(path, self.root)
        if name is None:
            logger.debug(f"No resource name for {path}")
            return None
        self._resource_map.setdefault(start, name)
        return name

    def scan(self, directory: Path | None = None) -> int:
        """
        Pre-populate the resource map from every manifest under `directory`.

        Returns:
            Number of directories mapped by this scan
        """
        base = Path(directory).resolve() if directory else self.root
        mapped = 0
        if not base.is_dir():
            logger.warning(f"Cannot scan for resources, not a directory: {base}")
            return mapped

        for manifest in sorted(base.rglob(MANIFEST_FILENAME)):
            probe = self._probe(manifest.parent)
            if probe is None:
                continue
            name = apply_rules(probe)
            if name is None:
                continue
            self._resource_map[manifest.parent] = name
            mapped += 1
            logger.debug(f"Mapped directory {manifest.parent} to resource {name}")
        return mapped
