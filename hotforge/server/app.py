"""
Control-plane HTTP service.

Endpoints:
    GET  /                       plain-text banner
    GET  /resources              list of resources on the host
    POST /restart?resource=NAME  restart one resource
    POST /restart                restart every resource except this one

Every response carries permissive CORS headers. OPTIONS requests are
answered with 204 before authentication; everything else needs
`Authorization: Bearer <api key>`.
"""

from __future__ import annotations

import hmac
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from hotforge.config import HotforgeSettings, get_settings

from .artifact_watcher import ArtifactWatcher
from .host import DirectoryResourceHost, ResourceHost
from .restart import DEFAULT_START_DELAY, ResourceRestarter

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

BANNER = "Resource Management API\n"

# / and /resources answer regardless of method; only /restart is POST-bound
ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def is_authorized(header: str | None, api_key: str) -> bool:
    """Check a bearer Authorization header; an empty configured key admits nobody."""
    if not api_key or not header:
        return False
    token = header[len("Bearer "):] if header.startswith("Bearer ") else header
    return hmac.compare_digest(token.encode(), api_key.encode())


def create_app(
    host: ResourceHost,
    api_key: str,
    *,
    artifact_dir: Path | None = None,
    start_delay: float = DEFAULT_START_DELAY,
) -> FastAPI:
    """
    Build the control-plane application.

    Args:
        host: Live environment the resources run in
        api_key: Required bearer token
        artifact_dir: Build output to watch; None disables the watcher
        start_delay: Seconds between stopping and starting a resource
    """
    restarter = ResourceRestarter(host, start_delay=start_delay)
    watcher = (
        ArtifactWatcher(artifact_dir, restarter, self_resource=host.current_resource)
        if artifact_dir is not None
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Control plane starting as {host.current_resource}")
        if watcher is not None:
            watcher.start()

        yield

        logger.info("Control plane shutting down")
        if watcher is not None:
            await watcher.stop()
        await restarter.drain()

    app = FastAPI(
        title="Hotforge control plane",
        description="Resource restart endpoint for the dev loop",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.host = host
    app.state.restarter = restarter
    app.state.artifact_watcher = watcher

    @app.middleware("http")
    async def cors_and_auth(request: Request, call_next):
        if request.method == "OPTIONS":
            response: Response = Response(status_code=204)
        elif not is_authorized(request.headers.get("authorization"), api_key):
            logger.warning(f"Rejected unauthenticated request to {request.url.path}")
            response = JSONResponse(
                {"success": False, "error": "Unauthorized: Invalid API key"},
                status_code=401,
            )
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def endpoint_not_found(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse({"success": False, "error": "Endpoint not found"}, status_code=404)
        return JSONResponse({"success": False, "error": str(exc.detail)}, status_code=exc.status_code)

    @app.api_route("/", methods=ANY_METHOD)
    async def banner() -> PlainTextResponse:
        return PlainTextResponse(BANNER)

    @app.api_route("/resources", methods=ANY_METHOD)
    async def list_resources() -> dict[str, Any]:
        resources = host.list_resources()
        return {"success": True, "resources": resources, "count": len(resources)}

    @app.post("/restart")
    async def restart(resource: str | None = None) -> JSONResponse:
        if resource:
            success = await restarter.restart(resource)
            message = (
                f"Resource '{resource}' restarted successfully"
                if success
                else f"Resource '{resource}' not found or failed to restart"
            )
            return JSONResponse(
                {"success": success, "resource": resource, "message": message},
                status_code=200 if success else 404,
            )

        outcome = await restarter.restart_all()
        return JSONResponse(
            {
                "success": outcome.success,
                "message": "Resources restart operation completed",
                "results": outcome.results,
            }
        )

    return app


def create_app_from_settings(settings: HotforgeSettings | None = None) -> FastAPI:
    """Build the control plane for the configured host resource tree."""
    settings = settings or get_settings()
    artifact_dir = settings.resolve(settings.artifact_dir)
    host = DirectoryResourceHost(
        settings.deploy_root or artifact_dir,
        current_resource=settings.self_resource,
    )
    api_key = settings.reloader_api_key.get_secret_value()
    if not api_key:
        logger.warning("RELOADER_API_KEY is not set; every request will be rejected")
    return create_app(host, api_key, artifact_dir=artifact_dir)
