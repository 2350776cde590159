"""
Typed plugin manifest.

`plugin.json` descriptors carry a known subset of fields plus arbitrary
extra keys. The model keeps the extras (pydantic `extra="allow"`) and only
ever serializes fields that were actually set, so a descriptor that goes
through any of the transformations below comes back out with every key it
did not touch unchanged.

Script, export and provide lists may be written as a single string;
they are normalized to one-item lists on load.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


UI_ASSET_GLOB = "html/**/*"
UI_ENTRY_POINT = "html/index.html"
WEBVIEW_RESOURCE = "webview"

_TS_SUFFIX = re.compile(r"\.ts$")


def _ts_to_js(paths: list[str]) -> list[str]:
    return [_TS_SUFFIX.sub(".js", p.replace("\\", "/")) for p in paths]


def _as_list(value: Any) -> Any:
    return [value] if isinstance(value, str) else value


# =============================================================================
# Nested Descriptor Entries
# =============================================================================


class DependencySpec(BaseModel):
    """Dependency on a resource, optionally pinned to a server build."""

    model_config = ConfigDict(extra="allow")

    resource: str
    server: str | None = None


class DataFileSpec(BaseModel):
    """`data_file` entries; `path` or `files` name the data."""

    model_config = ConfigDict(extra="allow")

    type: str
    path: str | None = None
    files: list[str] | None = None

    @field_validator("files", mode="before")
    @classmethod
    def _single_file_as_list(cls, value: Any) -> Any:
        return _as_list(value)

    @property
    def paths(self) -> list[str]:
        paths = [self.path] if self.path else []
        return paths + list(self.files or [])


class LoadscreenSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    page: str | None = None
    manual_shutdown: bool = False


class LevelMetaSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    before: str | None = None
    after: str | None = None
    replace: str | None = None


class ConvarVariable(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    type: str
    default: Any = None


class ConvarCategory(BaseModel):
    model_config = ConfigDict(extra="allow")

    category: str | None = None
    variables: list[ConvarVariable] = Field(default_factory=list)


# =============================================================================
# Manifest
# =============================================================================


class PluginManifest(BaseModel):
    """
    Manifest data for one plugin.

    Only the fields below are interpreted; any other key found in the
    descriptor is preserved verbatim.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = Field(None, description="Declared resource name")
    fx_version: str | None = None
    games: list[str] | None = None
    author: str | None = None
    description: str | None = None
    version: str | None = None
    client_scripts: list[str] | None = None
    server_scripts: list[str] | None = None
    shared_scripts: list[str] | None = None
    exports: list[str] | None = None
    server_exports: list[str] | None = None
    files: list[str] | None = None
    ui_page: str | None = None
    is_map: bool | None = None
    server_only: bool | None = None
    lua54: bool | None = None
    provide: list[str] | None = None
    level_meta: LevelMetaSpec | None = None
    data_files: list[DataFileSpec] | None = None
    loadscreen: LoadscreenSpec | None = None
    loadscreen_manual_shutdown: bool | None = None
    dependencies: list[str | DependencySpec] | None = None
    experimental: dict[str, Any] | None = None
    convars: dict[str, ConvarCategory] | None = None

    @field_validator(
        "games",
        "client_scripts",
        "server_scripts",
        "shared_scripts",
        "exports",
        "server_exports",
        "files",
        "provide",
        mode="before",
    )
    @classmethod
    def _single_string_as_list(cls, value: Any) -> Any:
        return _as_list(value)

    @field_validator("loadscreen", mode="before")
    @classmethod
    def _loadscreen_page(cls, value: Any) -> Any:
        return {"page": value} if isinstance(value, str) else value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PluginManifest":
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        """Serialize only the keys that were present or explicitly set."""
        return self.model_dump(exclude_unset=True)

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    @property
    def dependency_names(self) -> list[str]:
        return [d if isinstance(d, str) else d.resource for d in self.dependencies or []]

    def _replace(self, **changes: Any) -> "PluginManifest":
        return PluginManifest.model_validate({**self.to_dict(), **changes})

    def with_ui_assets(self) -> "PluginManifest":
        """
        Include the built UI page.

        Appends the UI asset glob to `files` and points `ui_page` at the
        built entry point. No other key is modified.
        """
        files = list(self.files or [])
        if UI_ASSET_GLOB not in files:
            files.append(UI_ASSET_GLOB)
        return self._replace(files=files, ui_page=UI_ENTRY_POINT)

    def with_dependency(self, dependency: str) -> "PluginManifest":
        if dependency in self.dependency_names:
            return self
        dependencies = [
            d if isinstance(d, str) else d.model_dump(exclude_unset=True)
            for d in self.dependencies or []
        ]
        dependencies.append(dependency)
        return self._replace(dependencies=dependencies)

    def with_generated_scripts(
        self,
        client: list[str],
        server: list[str],
        shared: list[str],
    ) -> "PluginManifest":
        """
        Point the script lists at compiled output.

        A non-empty generated list replaces the declared pattern list;
        `.ts` entries (generated or in `files`) are rewritten to `.js`.
        """
        changes: dict[str, Any] = {}
        for key, generated in (
            ("client_scripts", client),
            ("server_scripts", server),
            ("shared_scripts", shared),
        ):
            if generated:
                changes[key] = _ts_to_js(generated)
        if self.files is not None:
            changes["files"] = _ts_to_js(self.files)
        return self._replace(**changes) if changes else self


def default_manifest(name: str) -> PluginManifest:
    """Minimal manifest for output directories that lack one."""
    return PluginManifest(
        name=name,
        fx_version="cerulean",
        games=["gta5"],
        author="hotforge",
        description=f"{name} resource",
        version="1.0.0",
    )


def webview_manifest() -> PluginManifest:
    """Manifest for the shared UI framework resource."""
    return PluginManifest(
        name=WEBVIEW_RESOURCE,
        fx_version="cerulean",
        games=["gta5"],
        author="hotforge",
        description="Shared webview",
        version="1.0.0",
        files=["index.html", "assets/**/*"],
        ui_page="index.html",
    )
