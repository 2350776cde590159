"""
Build context.

One BuildContext is created per pipeline run (full build or rebuild
subset) and owned by that run only. Stages read configuration from it and
leave their products on it for later stages: discovered plugins, built
outputs, the deployment destination.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from hotforge.config import BuildConfig, BuildOptions
from hotforge.observability import JSONLogger, StructuredLogger

if TYPE_CHECKING:
    from hotforge.plugins import BuiltPlugin, Plugin


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class BuildContext:
    """
    Per-run configuration bundle threaded through every stage.

    Provides:
    - Paths and feature flags for the run
    - A structured logger bound to the run id
    - Stage timings for the run summary
    - Products handed from one stage to the next
    """

    root_dir: Path
    plugins_dir: Path
    core_dir: Path
    dist_dir: Path
    watch_enabled: bool = False
    reload_enabled: bool = False
    logger: StructuredLogger = field(default_factory=JSONLogger)
    config: BuildConfig | None = None
    trigger: str = "full"

    # Run identification
    run_id: UUID = field(default_factory=uuid4)
    started_at: datetime = field(default_factory=_utc_now)

    # Audit trail
    stage_timings: dict[str, float] = field(default_factory=dict)

    # Stage products
    plugins: list["Plugin"] = field(default_factory=list)
    core_plugins: list["Plugin"] = field(default_factory=list)
    built: list["BuiltPlugin"] = field(default_factory=list)
    deployed_to: Path | None = None

    def __post_init__(self) -> None:
        if isinstance(self.logger, JSONLogger) and self.logger.run_id is None:
            self.logger = self.logger.for_run(self.short_id, trigger=self.trigger)

    @classmethod
    def from_config(
        cls,
        config: BuildConfig,
        *,
        watch_enabled: bool = False,
        logger: StructuredLogger | None = None,
        trigger: str = "full",
    ) -> "BuildContext":
        paths = config.paths
        return cls(
            root_dir=paths.root_dir,
            plugins_dir=paths.plugins_dir,
            core_dir=paths.core_dir,
            dist_dir=paths.dist_dir,
            watch_enabled=watch_enabled,
            reload_enabled=config.reloader.enabled,
            logger=logger or JSONLogger(),
            config=config,
            trigger=trigger,
        )

    @property
    def short_id(self) -> str:
        return str(self.run_id)[:8]

    @property
    def options(self) -> BuildOptions:
        return self.config.options if self.config else BuildOptions()

    @property
    def webview_dir(self) -> Path:
        if self.config:
            return self.config.paths.webview_dir
        return self.root_dir / "src" / "webview"

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the run started."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    @property
    def deployed_resources(self) -> list[str]:
        """Resource names built by this run, in build order, without duplicates."""
        seen: dict[str, None] = {}
        for built in self.built:
            seen.setdefault(built.name, None)
        return list(seen)

    def record_timing(self, stage_name: str, duration_ms: float) -> None:
        self.stage_timings[stage_name] = duration_ms

    def derive(self, trigger: str, **overrides: Any) -> "BuildContext":
        """
        Create the context for a new run with the same configuration.

        Run identity, timings and stage products start fresh.
        """
        logger = self.logger
        if isinstance(logger, JSONLogger):
            logger = logger.detached()
        values: dict[str, Any] = {
            "root_dir": self.root_dir,
            "plugins_dir": self.plugins_dir,
            "core_dir": self.core_dir,
            "dist_dir": self.dist_dir,
            "watch_enabled": self.watch_enabled,
            "reload_enabled": self.reload_enabled,
            "logger": logger,
            "config": self.config,
            "trigger": trigger,
        }
        values.update(overrides)
        return BuildContext(**values)

    def summary(self) -> dict[str, Any]:
        return {
            "run_id": self.short_id,
            "trigger": self.trigger,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "stages": {k: round(v, 2) for k, v in self.stage_timings.items()},
            "built": [b.name for b in self.built],
            "deployed_to": str(self.deployed_to) if self.deployed_to else None,
        }
