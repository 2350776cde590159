"""
Observability for hotforge.

Structured logging for build runs, watch events and reload requests.
Every failure in the build core is reported through a log line carrying
level, timestamp, message and optional structured detail; there is no
separate error-reporting channel.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# =============================================================================
# Log Levels
# =============================================================================


class LogLevel(Enum):
    """Standard log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LEVEL_NUMBERS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


# =============================================================================
# Structured Logger Protocol
# =============================================================================


class StructuredLogger(Protocol):
    """
    Protocol for structured logging implementations.

    Structured loggers emit logs as key-value pairs rather than
    plain strings, so watch and build events stay greppable.
    """

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, **context: Any) -> None:
        """Log error message."""
        ...


# =============================================================================
# JSON Logger Implementation
# =============================================================================


@dataclass
class JSONLogger:
    """
    Structured logger that outputs JSON-formatted logs.

    Each log entry includes:
    - timestamp (ISO 8601)
    - level
    - message
    - build correlation: run_id, trigger and stage, whichever are bound
    - context fields

    `for_run`, `for_stage` and `with_context` return bound copies and
    leave the original untouched. A keyword passed to a single
    call overrides the bound value for that line only.

    Example output:
        {"timestamp": "2026-01-02T10:30:00+00:00", "level": "info",
         "message": "Copied 4 files", "run_id": "1f0c2a9e",
         "trigger": "plugin", "stage": "deploy_resources"}
    """

    name: str = "hotforge"
    run_id: str | None = None
    trigger: str | None = None
    stage: str | None = None
    extra_context: dict[str, Any] = field(default_factory=dict)
    _python_logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._python_logger = logging.getLogger(self.name)

    @property
    def correlation(self) -> dict[str, str]:
        """The build identifiers stamped on every line."""
        fields = {"run_id": self.run_id, "trigger": self.trigger, "stage": self.stage}
        return {k: v for k, v in fields.items() if v}

    def _log(self, level: LogLevel, message: str, context: dict[str, Any]) -> None:
        levelno = _LEVEL_NUMBERS[level]
        if not self._python_logger.isEnabledFor(levelno):
            return

        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "message": message,
            **self.correlation,
            **self.extra_context,
            **context,
        }
        self._python_logger.log(levelno, json.dumps(record, default=str))

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, context)

    def error(self, message: str, **context: Any) -> None:
        self._log(LogLevel.ERROR, message, context)

    def with_context(self, **extra: Any) -> "JSONLogger":
        """Create a new logger with additional context."""
        return replace(self, extra_context={**self.extra_context, **extra})

    def for_run(self, run_id: str, trigger: str | None = None) -> "JSONLogger":
        """Bind a pipeline run; the trigger is kept unless a new one is given."""
        return replace(self, run_id=run_id, trigger=trigger or self.trigger, stage=None)

    def for_stage(self, stage: str) -> "JSONLogger":
        """Bind the stage currently executing within the run."""
        return replace(self, stage=stage)

    def detached(self) -> "JSONLogger":
        """Drop the run binding, keeping name and extra context."""
        return replace(self, run_id=None, trigger=None, stage=None)


# =============================================================================
# Build Logger
# =============================================================================


@dataclass
class BuildLogger:
    """
    Specialized logger for build pipeline events.

    Example:
        log = BuildLogger(run_id="1f0c2a9e")
        log.pipeline_started(stages=["build_core_plugins", "deploy_resources"])
        log.stage_started("build_core_plugins")
        log.stage_completed("build_core_plugins", duration_ms=812.4)
        log.pipeline_completed(success=True, duration_ms=1204.0)
    """

    run_id: str
    trigger: str = ""
    inner: StructuredLogger = field(default_factory=lambda: JSONLogger(name="hotforge.build"))

    def __post_init__(self) -> None:
        if isinstance(self.inner, JSONLogger):
            self.inner = self.inner.for_run(self.run_id, trigger=self.trigger or None)

    def pipeline_started(self, stages: list[str]) -> None:
        self.inner.info(
            "Pipeline started",
            stages=stages,
            stage_count=len(stages),
        )

    def pipeline_completed(self, success: bool, duration_ms: float) -> None:
        level = self.inner.info if success else self.inner.error
        level(
            "Pipeline completed",
            success=success,
            duration_ms=round(duration_ms, 2),
        )

    def stage_started(self, stage: str) -> None:
        self.inner.info("Stage started", stage=stage)

    def stage_completed(self, stage: str, duration_ms: float) -> None:
        self.inner.info(
            "Stage completed",
            stage=stage,
            duration_ms=round(duration_ms, 2),
        )

    def stage_failed(self, stage: str, error: BaseException, duration_ms: float) -> None:
        self.inner.error(
            "Stage failed",
            stage=stage,
            error_type=type(error).__name__,
            error_message=str(error),
            duration_ms=round(duration_ms, 2),
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the CLI and the control-plane service."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
