"""
Exception taxonomy for hotforge.

Failures are split by how far they are allowed to travel:

- StageError: fatal to the current pipeline run, surfaces to the caller
  with the failing stage attached.
- PluginBuildError / ManifestError / CompilerError: recoverable per item,
  converted to a log entry at the per-plugin boundary.

Control-plane failures are never exceptions; see ControlPlaneResult.
"""

from __future__ import annotations


class HotforgeError(Exception):
    """Base exception for hotforge errors."""


class ConfigurationError(HotforgeError):
    """Raised when settings are invalid or inconsistent."""


class StageError(HotforgeError):
    """Raised by the build pipeline when a stage handler fails."""

    def __init__(self, stage_name: str, cause: BaseException):
        super().__init__(f"Stage '{stage_name}' failed: {cause}")
        self.stage_name = stage_name
        self.cause = cause


class PluginBuildError(HotforgeError):
    """Raised when a single plugin cannot be built."""

    def __init__(self, plugin_name: str, message: str):
        super().__init__(message)
        self.plugin_name = plugin_name

    def __str__(self) -> str:
        return f"[{self.plugin_name}] {self.args[0]}"


class ManifestError(PluginBuildError):
    """Raised when a plugin descriptor is missing or invalid."""


class CompilerError(HotforgeError):
    """Raised when an external compiler exits unsuccessfully."""

    def __init__(
        self,
        source: str,
        message: str,
        *,
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.source = source
        self.returncode = returncode

    def __str__(self) -> str:
        parts = [f"{self.source}: {self.args[0]}"]
        if self.returncode is not None:
            parts.append(f"(exit={self.returncode})")
        return " ".join(parts)
