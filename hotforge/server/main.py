"""
Hotforge control plane

Uvicorn entry point: `python -m hotforge.server.main`.
"""

from __future__ import annotations

from hotforge.config import get_settings
from hotforge.observability import configure_logging

from .app import create_app_from_settings

settings = get_settings()
configure_logging(settings.log_level)

app = create_app_from_settings(settings)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "hotforge.server.main:app",
        host=settings.control_plane_host,
        port=settings.control_plane_port,
    )
