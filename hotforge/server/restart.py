"""
Restart logic of the control-plane service.

A restart stops the resource at once and starts it again after a short
delay; the caller gets its answer without waiting for the start.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from hotforge.resources import is_resource_name

from .host import ResourceHost, ResourceState

logger = logging.getLogger(__name__)

DEFAULT_START_DELAY = 0.5


def clean_resource_name(name: str) -> str:
    """Strip folder prefixes: `[misc]/example` -> `example`."""
    return name.rstrip("/").split("/")[-1]


@dataclass
class RestartAllResult:
    success: bool
    results: dict[str, bool]


@dataclass
class ResourceRestarter:
    """Stops and restarts resources on a host."""

    host: ResourceHost
    start_delay: float = DEFAULT_START_DELAY
    _pending_starts: set[asyncio.Task] = field(default_factory=set, init=False)

    async def restart(self, name: str) -> bool:
        """
        Restart one resource.

        Returns:
            False if the name is empty or the resource does not exist
        """
        if not name or not name.strip():
            logger.error(f"Invalid resource name: {name!r}")
            return False

        clean_name = clean_resource_name(name)
        if not is_resource_name(clean_name):
            logger.error(f"Invalid resource name: {name!r}")
            return False

        if self.host.state(clean_name) is ResourceState.MISSING:
            logger.error(f"Resource '{clean_name}' not found")
            return False

        logger.info(f"Restarting resource: {clean_name}")
        self.host.stop(clean_name)
        task = asyncio.get_running_loop().create_task(self._start_later(clean_name))
        self._pending_starts.add(task)
        task.add_done_callback(self._pending_starts.discard)
        return True

    async def _start_later(self, name: str) -> None:
        await asyncio.sleep(self.start_delay)
        try:
            self.host.start(name)
            logger.info(f"Resource '{name}' started")
        except Exception:
            logger.exception(f"Failed to start resource '{name}'")

    async def restart_all(self) -> RestartAllResult:
        """Restart every resource except the one hosting this service."""
        results: dict[str, bool] = {}
        for name in self.host.list_resources():
            if name == self.host.current_resource:
                results[name] = True
                continue
            results[name] = await self.restart(name)
        return RestartAllResult(success=all(results.values()), results=results)

    async def drain(self) -> None:
        """Wait for delayed starts to complete."""
        while self._pending_starts:
            await asyncio.gather(*list(self._pending_starts), return_exceptions=True)
