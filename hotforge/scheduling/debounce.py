"""
Debounced task scheduling.

Bursts of change notifications are coalesced per key: every trigger for a
key cancels the pending timer and re-arms it, so the task runs once, after
the settling window has passed with no further trigger. The last task
registered for a key is the one that runs.

Settling windows depend on the key:
- generated-resource-<name>: long window, bulk copies into the host
- webview-<plugin dir>: medium window, UI page rebuilds
- anything else: short window for a single source edit
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

if TYPE_CHECKING:
    from hotforge.config import HotforgeSettings

logger = logging.getLogger(__name__)

GENERATED_RESOURCE_PREFIX = "generated-resource-"
WEBVIEW_PREFIX = "webview-"

TaskFactory = Callable[[], "Awaitable[None] | None"]


def generated_resource_key(resource_name: str) -> str:
    return f"{GENERATED_RESOURCE_PREFIX}{resource_name}"


def webview_key(plugin_dir: str) -> str:
    return f"{WEBVIEW_PREFIX}{plugin_dir}"


# =============================================================================
# Delay Policy
# =============================================================================


@dataclass(frozen=True, slots=True)
class DebouncePolicy:
    """
    Maps a task key to its settling window.

    Prefix rules are checked in order; the first match wins.
    """

    default_ms: int = 300
    prefix_delays: tuple[tuple[str, int], ...] = (
        (GENERATED_RESOURCE_PREFIX, 3000),
        (WEBVIEW_PREFIX, 1000),
    )

    @classmethod
    def from_settings(cls, settings: "HotforgeSettings") -> "DebouncePolicy":
        return cls(
            default_ms=settings.debounce_ms,
            prefix_delays=(
                (GENERATED_RESOURCE_PREFIX, settings.generated_debounce_ms),
                (WEBVIEW_PREFIX, settings.webview_debounce_ms),
            ),
        )

    def delay_for(self, key: str, explicit_ms: int | None = None) -> int:
        """Resolve the delay for a key; an explicit delay always wins."""
        if explicit_ms is not None:
            return explicit_ms
        for prefix, delay_ms in self.prefix_delays:
            if key.startswith(prefix):
                return delay_ms
        return self.default_ms


# =============================================================================
# Scheduler
# =============================================================================


@dataclass(slots=True)
class PendingTask:
    """One armed timer in the debounce registry."""

    key: str
    task: TaskFactory
    delay_ms: int
    handle: asyncio.TimerHandle
    triggers: int = 1


@dataclass
class DebouncedTaskScheduler:
    """
    Per-key debounce registry on the running event loop.

    Example:
        scheduler = DebouncedTaskScheduler()
        scheduler.execute("core", lambda: coordinator.rebuild("core"))
        scheduler.execute("core", lambda: coordinator.rebuild("core"))
        # one rebuild, 300 ms after the second call
    """

    policy: DebouncePolicy = field(default_factory=DebouncePolicy)
    _pending: dict[str, PendingTask] = field(default_factory=dict, init=False)
    _running: set[asyncio.Task] = field(default_factory=set, init=False)
    executed: int = field(default=0, init=False)

    def execute(self, key: str, task: TaskFactory, delay_ms: int | None = None) -> None:
        """
        Schedule `task` under `key`, resetting any pending timer for the key.

        Must be called from within the running event loop.
        """
        loop = asyncio.get_running_loop()
        delay = self.policy.delay_for(key, delay_ms)

        triggers = 1
        existing = self._pending.pop(key, None)
        if existing is not None:
            existing.handle.cancel()
            triggers = existing.triggers + 1

        handle = loop.call_later(delay / 1000, self._fire, key)
        self._pending[key] = PendingTask(
            key=key,
            task=task,
            delay_ms=delay,
            handle=handle,
            triggers=triggers,
        )
        logger.debug(f"Debounced '{key}' for {delay}ms (triggers={triggers})")

    def _fire(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is None:
            return
        task = asyncio.get_running_loop().create_task(self._run(entry))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, entry: PendingTask) -> None:
        self.executed += 1
        logger.debug(f"Running debounced task '{entry.key}' after {entry.triggers} trigger(s)")
        try:
            result = entry.task()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"Error executing task {entry.key}")

    def pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def cancel(self, key: str) -> bool:
        """Drop a pending task without running it."""
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry.handle.cancel()
        return True

    def clear(self) -> None:
        """Drop every pending task."""
        for entry in self._pending.values():
            entry.handle.cancel()
        self._pending.clear()

    async def drain(self) -> None:
        """Wait for tasks that already fired to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
