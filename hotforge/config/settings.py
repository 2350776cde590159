"""
Settings for hotforge.

Everything the build core, the watcher and the control plane need is
collected in HotforgeSettings and read from the environment once.

Security:
    The control-plane bearer token uses SecretStr so it never ends up
    in log output. Access it with `.get_secret_value()`.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, SecretStr, ValidationError

from hotforge.errors import ConfigurationError

GENERATED_DIR_NAME = "[GENERATED]"


class BuildOptions(BaseModel):
    """Compiler options passed to every stage."""

    minify: bool = False
    source_maps: bool = True
    clean: bool = True


class BuildPaths(BaseModel):
    """Absolute paths the pipeline reads from and writes to."""

    root_dir: Path
    plugins_dir: Path
    core_dir: Path
    dist_dir: Path
    webview_dir: Path


class ReloaderConfig(BaseModel):
    """Where and how to reach the control plane."""

    enabled: bool = False
    host: str = "localhost"
    port: int = 3414
    api_key: SecretStr = Field(default=SecretStr(""))

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


class BuildConfig(BaseModel):
    """Configuration bundle threaded through a build run."""

    env: str = "development"
    options: BuildOptions = Field(default_factory=BuildOptions)
    paths: BuildPaths
    reloader: ReloaderConfig = Field(default_factory=ReloaderConfig)


class HotforgeSettings(BaseModel):
    """
    Application settings model.

    Reload settings are optional; with the defaults the orchestrator
    builds and deploys but never contacts a live server.
    """

    environment: str = "development"
    log_level: str = "INFO"

    # Source and output layout
    root_dir: Path = Field(default_factory=Path.cwd)
    plugins_dir: Path = Path("src/plugins")
    core_dir: Path = Path("src/core")
    dist_dir: Path = Path("dist")
    webview_dir: Path = Path("src/webview")

    # Build options
    minify: bool = False
    source_maps: bool = True
    clean: bool = True

    # Host identity and deployment target
    server_name: str | None = Field(default=None, description="Host-identifying server name")
    resources_root: Path | None = Field(
        default=None, description="Override for txData/<server_name>/resources"
    )

    # Reload / control plane client
    reloader_enabled: bool = False
    reloader_host: str = "localhost"
    reloader_port: int = 3414
    reloader_api_key: SecretStr = Field(default=SecretStr(""), description="Control-plane bearer token")
    request_timeout: float = Field(default=5.0, gt=0)
    restart_cooldown_ms: int = Field(default=2000, ge=0)

    # Settling windows
    debounce_ms: int = Field(default=300, ge=0)
    webview_debounce_ms: int = Field(default=1000, ge=0)
    generated_debounce_ms: int = Field(default=3000, ge=0)

    # Control-plane service
    control_plane_host: str = "0.0.0.0"
    control_plane_port: int = 3414
    self_resource: str = "resource-manager"
    artifact_dir: Path = Path("dist")

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the project root."""
        return path if path.is_absolute() else (self.root_dir / path)

    @property
    def deploy_root(self) -> Path | None:
        """The host's live resource root, or None when no host is configured."""
        if self.resources_root is not None:
            return self.resolve(self.resources_root)
        if not self.server_name:
            return None
        return self.root_dir / "txData" / self.server_name / "resources"

    @property
    def generated_dir(self) -> Path | None:
        root = self.deploy_root
        return root / GENERATED_DIR_NAME if root is not None else None

    def build_config(self) -> BuildConfig:
        """Derive the per-run build configuration."""
        return BuildConfig(
            env=self.environment,
            options=BuildOptions(
                minify=self.minify,
                source_maps=self.source_maps,
                clean=self.clean,
            ),
            paths=BuildPaths(
                root_dir=self.root_dir,
                plugins_dir=self.resolve(self.plugins_dir),
                core_dir=self.resolve(self.core_dir),
                dist_dir=self.resolve(self.dist_dir),
                webview_dir=self.resolve(self.webview_dir),
            ),
            reloader=ReloaderConfig(
                enabled=self.reloader_enabled,
                host=self.reloader_host,
                port=self.reloader_port,
                api_key=self.reloader_api_key,
            ),
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value) if value else None


def load_settings() -> HotforgeSettings:
    """
    Build settings from the current environment (uncached).

    Raises:
        ConfigurationError: If a variable cannot be parsed or fails validation
    """
    try:
        return _settings_from_env()
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"Invalid hotforge settings: {e}") from e


def _settings_from_env() -> HotforgeSettings:
    return HotforgeSettings(
        environment=os.getenv("HOTFORGE_ENV", "development"),
        log_level=os.getenv("HOTFORGE_LOG_LEVEL", "INFO"),
        # Layout
        root_dir=_env_path("HOTFORGE_ROOT_DIR") or Path.cwd(),
        plugins_dir=Path(os.getenv("HOTFORGE_PLUGINS_DIR", "src/plugins")),
        core_dir=Path(os.getenv("HOTFORGE_CORE_DIR", "src/core")),
        dist_dir=Path(os.getenv("HOTFORGE_DIST_DIR", "dist")),
        webview_dir=Path(os.getenv("HOTFORGE_WEBVIEW_DIR", "src/webview")),
        # Build options
        minify=_env_bool("HOTFORGE_MINIFY", False),
        source_maps=_env_bool("HOTFORGE_SOURCE_MAPS", True),
        clean=_env_bool("HOTFORGE_CLEAN", True),
        # Host
        server_name=os.getenv("SERVER_NAME") or None,
        resources_root=_env_path("HOTFORGE_RESOURCES_ROOT"),
        # Reloader
        reloader_enabled=_env_bool("RELOADER_ENABLED", False),
        reloader_host=os.getenv("RELOADER_HOST", "localhost"),
        reloader_port=int(os.getenv("RELOADER_PORT", "3414")),
        reloader_api_key=SecretStr(os.getenv("RELOADER_API_KEY", "")),
        request_timeout=float(os.getenv("HOTFORGE_REQUEST_TIMEOUT", "5.0")),
        restart_cooldown_ms=int(os.getenv("HOTFORGE_RESTART_COOLDOWN_MS", "2000")),
        # Debounce
        debounce_ms=int(os.getenv("HOTFORGE_DEBOUNCE_MS", "300")),
        webview_debounce_ms=int(os.getenv("HOTFORGE_WEBVIEW_DEBOUNCE_MS", "1000")),
        generated_debounce_ms=int(os.getenv("HOTFORGE_GENERATED_DEBOUNCE_MS", "3000")),
        # Control plane
        control_plane_host=os.getenv("HOTFORGE_CONTROL_PLANE_HOST", "0.0.0.0"),
        control_plane_port=int(os.getenv("HOTFORGE_CONTROL_PLANE_PORT", "3414")),
        self_resource=os.getenv("HOTFORGE_SELF_RESOURCE", "resource-manager"),
        artifact_dir=Path(os.getenv("HOTFORGE_ARTIFACT_DIR", "dist")),
    )


@lru_cache()
def get_settings() -> HotforgeSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return load_settings()
