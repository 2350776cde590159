"""
Control Plane Example

This example demonstrates the restart loop without a live host:
1. Serve the control plane over an in-memory resource host
2. Talk to it with ControlPlaneClient through httpx's ASGI transport
3. Restart one resource, then all of them

Run: python examples/02-control-plane/main.py
"""

import asyncio

import httpx

from hotforge.resources import ControlPlaneClient, ControlPlaneConfig
from hotforge.server import InMemoryResourceHost, create_app

API_KEY = "example-key"


async def main():
    host = InMemoryResourceHost.with_resources(["resource-manager", "greeter", "inventory"])
    app = create_app(host, API_KEY, start_delay=0.1)

    client = ControlPlaneClient(
        ControlPlaneConfig(base_url="http://control-plane", api_key=API_KEY),
        transport=httpx.ASGITransport(app=app),
    )
    async with client:
        listing = await client.list_resources()
        print(f"Resources: {listing.data['resources']}")

        result = await client.restart("[misc]/greeter")
        print(f"Restart greeter: {result.data['message']}")

        result = await client.restart("missing")
        print(f"Restart missing: success={result.success}, status={result.status_code}")

        result = await client.restart_all()
        print(f"Restart all: {result.data['results']}")

    await app.state.restarter.drain()
    print()
    print(f"Stopped: {host.stopped}")
    print(f"Started: {host.started}")


if __name__ == "__main__":
    asyncio.run(main())
