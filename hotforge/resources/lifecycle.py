"""
Resource lifecycle: deploy build output into the host and request restarts.

Restart requests go through a per-resource cooldown. The timestamp is
recorded when the request is issued, not when it completes, so two
triggers racing for the same resource produce a single request.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from hotforge.config import GENERATED_DIR_NAME
from hotforge.scheduling import DebouncedTaskScheduler, generated_resource_key

from .client import ControlPlaneClient, ControlPlaneConfig, ControlPlaneResult
from .naming import is_container_name, is_structural_name

if TYPE_CHECKING:
    from hotforge.config import HotforgeSettings

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_MS = 2000


class ResourceLifecycleController:
    """
    Deploys compiled output and restarts resources on the live host.

    Args:
        deploy_root: Host resource root (None when no host is configured)
        client: Control-plane client used for restart requests
        reload_enabled: When False, restarts stop after cooldown bookkeeping
        cooldown_ms: Minimum spacing between restarts of one resource
        scheduler: Debounce scheduler used by schedule_restart
        clock: Monotonic clock in seconds, injectable for tests
    """

    def __init__(
        self,
        *,
        deploy_root: Path | None,
        client: ControlPlaneClient | None = None,
        reload_enabled: bool = False,
        cooldown_ms: int = DEFAULT_COOLDOWN_MS,
        scheduler: DebouncedTaskScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.deploy_root = Path(deploy_root) if deploy_root is not None else None
        self.client = client
        self.reload_enabled = reload_enabled and client is not None
        self.cooldown_ms = cooldown_ms
        self.scheduler = scheduler or DebouncedTaskScheduler()
        self._clock = clock
        self._last_restart: dict[str, float] = {}

    @classmethod
    def from_settings(
        cls,
        settings: "HotforgeSettings",
        scheduler: DebouncedTaskScheduler | None = None,
    ) -> "ResourceLifecycleController":
        client = None
        if settings.reloader_enabled:
            config = settings.build_config().reloader
            client = ControlPlaneClient(
                ControlPlaneConfig(
                    base_url=config.base_url,
                    api_key=config.api_key.get_secret_value(),
                    timeout=settings.request_timeout,
                )
            )
        return cls(
            deploy_root=settings.deploy_root,
            client=client,
            reload_enabled=settings.reloader_enabled,
            cooldown_ms=settings.restart_cooldown_ms,
            scheduler=scheduler,
        )

    @property
    def generated_dir(self) -> Path | None:
        if self.deploy_root is None:
            return None
        return self.deploy_root / GENERATED_DIR_NAME

    # =========================================================================
    # Deployment
    # =========================================================================

    async def deploy(self, build_output_dir: Path) -> Path | None:
        """
        Copy the whole build output tree into the host's generated directory.

        Returns:
            The destination directory, or None when deployment was skipped

        Raises:
            OSError: If copying fails
        """
        destination = self.generated_dir
        if destination is None:
            logger.warning("SERVER_NAME environment variable is not set. Skipping resource deployment.")
            return None

        source = Path(build_output_dir)
        if not source.is_dir():
            logger.warning(f"Nothing to deploy, build output missing: {source}")
            return None

        logger.debug(f"Copying built resources from {source} to {destination}")
        await asyncio.to_thread(destination.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copytree, source, destination, dirs_exist_ok=True)
        logger.info(f"Built resources deployed to {destination}")
        return destination

    # =========================================================================
    # Restarts
    # =========================================================================

    def last_restart(self, resource_name: str) -> float | None:
        return self._last_restart.get(resource_name)

    def _rejection_reason(self, resource_name: str) -> str | None:
        if not resource_name or not resource_name.strip():
            return "empty resource name"
        if is_structural_name(resource_name):
            return "structural subdirectory, not a resource"
        if is_container_name(resource_name):
            return "directory container, not a resource"
        return None

    async def restart(self, resource_name: str) -> ControlPlaneResult:
        """
        Ask the host to restart a resource.

        Never raises; failures are logged and returned as a failed result.
        """
        reason = self._rejection_reason(resource_name)
        if reason is not None:
            logger.debug(f"Skipping restart for '{resource_name}': {reason}")
            return ControlPlaneResult.skipped(reason)

        now = self._clock()
        last = self._last_restart.get(resource_name)
        if last is not None:
            elapsed_ms = (now - last) * 1000
            if elapsed_ms < self.cooldown_ms:
                logger.debug(
                    f"Skipping restart for {resource_name} - last restart was "
                    f"{elapsed_ms:.0f}ms ago (cooldown: {self.cooldown_ms}ms)"
                )
                return ControlPlaneResult.skipped("cooldown")

        self._last_restart[resource_name] = now

        if not self.reload_enabled or self.client is None:
            logger.debug(f"Resource reloader is disabled. Skipping reload of {resource_name}.")
            return ControlPlaneResult.skipped("reloader disabled")

        try:
            result = await self.client.restart(resource_name)
        except Exception as e:
            logger.exception(f"Error reloading resource {resource_name}")
            return ControlPlaneResult.fail(str(e))

        if result.success:
            logger.info(f"Resource {resource_name} reloaded successfully.")
        else:
            logger.error(
                f"Error reloading resource {resource_name}: {result.error} "
                f"(status={result.status_code})"
            )
        return result

    def schedule_restart(self, resource_name: str) -> bool:
        """
        Debounce a restart under the generated-resource key for this name.

        Restarts requested after a rebuild and restarts requested by
        generated-folder events share the key, so they coalesce.
        """
        if self._rejection_reason(resource_name) is not None:
            logger.debug(f"Not scheduling restart for '{resource_name}'")
            return False

        self.scheduler.execute(
            generated_resource_key(resource_name),
            lambda: self.restart(resource_name),
        )
        return True

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
