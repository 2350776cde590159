"""
Control-plane client.

Talks to the resource management API hosted inside the live server.
Every call completes: network errors, timeouts and non-success statuses
come back as a failed ControlPlaneResult instead of an exception, so a
briefly unreachable server can never abort a build or kill the watcher.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class ControlPlaneConfig:
    """Connection settings for the control plane."""

    base_url: str = "http://localhost:3414"
    api_key: str = ""
    timeout: float = 5.0

    # Observability
    log_requests: bool = False


# =============================================================================
# Response Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class ControlPlaneResult:
    """Outcome of a control-plane call."""

    success: bool
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    status_code: int | None = None

    @classmethod
    def ok(cls, data: dict[str, Any], status_code: int = 200) -> "ControlPlaneResult":
        """Create a successful result."""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def fail(cls, error: str, status_code: int | None = None) -> "ControlPlaneResult":
        """Create a failed result."""
        return cls(success=False, error=error, status_code=status_code)

    @classmethod
    def skipped(cls, reason: str) -> "ControlPlaneResult":
        """A request that was intentionally not sent."""
        return cls(success=True, data={"skipped": True, "reason": reason})

    @property
    def was_skipped(self) -> bool:
        return bool(self.data.get("skipped"))


# =============================================================================
# Client
# =============================================================================


class ControlPlaneClient:
    """
    HTTP client for the resource management API.

    Example:
        async with ControlPlaneClient(ControlPlaneConfig(api_key="secret")) as client:
            result = await client.restart("example")
            if not result.success:
                logger.warning(result.error)
    """

    name = "control-plane"

    def __init__(
        self,
        config: ControlPlaneConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            config: Connection settings
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.api_key}"}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                transport=self._transport,
                headers={
                    "Accept": "application/json",
                    **self._get_auth_headers(),
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> ControlPlaneResult:
        """
        Make one bounded request.

        Never raises for transport or protocol failures.
        """
        client = await self._get_client()

        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {path} params={params}")

        try:
            response = await asyncio.wait_for(
                client.request(method, path, params=params),
                timeout=self.config.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return ControlPlaneResult.fail(
                f"Request timeout after {self.config.timeout:.1f}s: {method} {path}"
            )
        except httpx.HTTPError as e:
            return ControlPlaneResult.fail(f"Network error: {e}")

        return self._check_response(response)

    def _check_response(self, response: httpx.Response) -> ControlPlaneResult:
        try:
            body = response.json()
        except ValueError:
            body = {"text": response.text}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.is_success and body.get("success", True) is not False:
            return ControlPlaneResult.ok(body, status_code=response.status_code)

        message = body.get("error") or body.get("message") or response.text or "Request failed"
        return ControlPlaneResult.fail(str(message), status_code=response.status_code)

    async def restart(self, resource: str) -> ControlPlaneResult:
        """Restart one resource."""
        return await self._request("POST", "/restart", params={"resource": resource})

    async def restart_all(self) -> ControlPlaneResult:
        """Restart every resource except the one hosting the service."""
        return await self._request("POST", "/restart")

    async def list_resources(self) -> ControlPlaneResult:
        return await self._request("GET", "/resources")

    async def health_check(self) -> bool:
        """Check if the control plane is reachable."""
        result = await self._request("GET", "/")
        return result.success

    async def __aenter__(self) -> "ControlPlaneClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
