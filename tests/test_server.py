"""
Tests for the control-plane service.

Uses FastAPI's TestClient against an InMemoryResourceHost.
"""
import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient
from watchfiles import Change

from hotforge.resources import ControlPlaneClient, ControlPlaneConfig
from hotforge.server import (
    BANNER,
    CORS_HEADERS,
    ArtifactWatcher,
    DirectoryResourceHost,
    InMemoryResourceHost,
    ResourceRestarter,
    ResourceState,
    clean_resource_name,
    create_app,
    is_authorized,
)

API_KEY = "test-key"
AUTH = {"Authorization": f"Bearer {API_KEY}"}


@pytest.fixture
def host():
    return InMemoryResourceHost.with_resources(["resource-manager", "a", "b"])


@pytest.fixture
def client(host):
    app = create_app(host, API_KEY, start_delay=0)
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Authentication and CORS
# =============================================================================


class TestAuthentication:
    def test_is_authorized(self):
        assert is_authorized("Bearer k", "k") is True
        assert is_authorized("Bearer wrong", "k") is False
        assert is_authorized(None, "k") is False
        assert is_authorized("Bearer ", "") is False

    def test_unauthenticated_restart_rejected(self, client, host):
        """An unauthenticated restart gets 401 and restarts nothing."""
        response = client.post("/restart", params={"resource": "a"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Unauthorized: Invalid API key"}
        assert host.stopped == []

    def test_wrong_token_rejected(self, client, host):
        response = client.post("/restart", params={"resource": "a"}, headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert host.stopped == []

    def test_unknown_path_requires_auth(self, client):
        assert client.get("/nowhere").status_code == 401

    def test_empty_configured_key_rejects_everything(self, host):
        app = create_app(host, "", start_delay=0)
        with TestClient(app) as test_client:
            response = test_client.get("/resources", headers={"Authorization": "Bearer "})
        assert response.status_code == 401


class TestCors:
    def test_options_answered_before_auth(self, client):
        response = client.options("/restart")
        assert response.status_code == 204
        for key, value in CORS_HEADERS.items():
            assert response.headers[key] == value

    def test_headers_on_every_response(self, client):
        for response in (client.get("/", headers=AUTH), client.get("/")):
            assert response.headers["Access-Control-Allow-Origin"] == "*"


# =============================================================================
# Endpoints
# =============================================================================


class TestEndpoints:
    def test_banner(self, client):
        response = client.get("/", headers=AUTH)
        assert response.status_code == 200
        assert response.text == BANNER
        assert response.headers["content-type"].startswith("text/plain")

    def test_list_resources(self, client):
        response = client.get("/resources", headers=AUTH)
        assert response.json() == {
            "success": True,
            "resources": ["resource-manager", "a", "b"],
            "count": 3,
        }

    def test_restart_one(self, client, host):
        response = client.post("/restart", params={"resource": "a"}, headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "resource": "a",
            "message": "Resource 'a' restarted successfully",
        }
        assert host.stopped == ["a"]

    def test_restart_echoes_requested_name(self, client, host):
        response = client.post("/restart", params={"resource": "[misc]/a"}, headers=AUTH)
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "resource": "[misc]/a",
            "message": "Resource '[misc]/a' restarted successfully",
        }
        assert host.stopped == ["a"]

    def test_restart_missing(self, client, host):
        response = client.post("/restart", params={"resource": "ghost"}, headers=AUTH)

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "resource": "ghost",
            "message": "Resource 'ghost' not found or failed to restart",
        }
        assert host.stopped == []

    def test_restart_all_skips_self(self, client, host):
        """Restart-all restarts the others and reports the host resource without stopping it."""
        response = client.post("/restart", headers=AUTH)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Resources restart operation completed",
            "results": {"resource-manager": True, "a": True, "b": True},
        }
        assert sorted(host.stopped) == ["a", "b"]
        assert "resource-manager" not in host.stopped

    def test_empty_resource_query_restarts_all(self, client, host):
        response = client.post("/restart?resource=", headers=AUTH)
        assert response.json()["message"] == "Resources restart operation completed"
        assert sorted(host.stopped) == ["a", "b"]

    def test_unknown_endpoint(self, client):
        response = client.get("/nowhere", headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Endpoint not found"}

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_banner_and_listing_answer_any_method(self, client, method):
        banner = client.request(method, "/", headers=AUTH)
        listing = client.request(method, "/resources", headers=AUTH)

        assert banner.status_code == 200
        assert banner.text == BANNER
        assert listing.status_code == 200
        assert listing.json()["count"] == 3

    def test_wrong_method_is_not_found(self, client):
        response = client.get("/restart", headers=AUTH)
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Endpoint not found"}

    def test_resources_started_again_on_shutdown(self, host):
        app = create_app(host, API_KEY, start_delay=0)
        with TestClient(app) as test_client:
            test_client.post("/restart", params={"resource": "a"}, headers=AUTH)
        # Lifespan shutdown waits for delayed starts
        assert host.started == ["a"]
        assert host.state("a") is ResourceState.STARTED


# =============================================================================
# Restarter
# =============================================================================


class TestResourceRestarter:
    @pytest.mark.parametrize(
        "name,expected",
        [("a", "a"), ("[misc]/a", "a"), ("[x]/[y]/a/", "a"), ("", "")],
    )
    def test_clean_resource_name(self, name, expected):
        assert clean_resource_name(name) == expected

    @pytest.mark.asyncio
    async def test_stop_then_delayed_start(self, host):
        restarter = ResourceRestarter(host, start_delay=0.05)

        assert await restarter.restart("a") is True
        assert host.stopped == ["a"]
        assert host.started == []

        await restarter.drain()
        assert host.started == ["a"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "   ", "client", "[misc]"])
    async def test_invalid_names(self, host, name):
        restarter = ResourceRestarter(host, start_delay=0)
        assert await restarter.restart(name) is False
        assert host.stopped == []

    @pytest.mark.asyncio
    async def test_restart_all_reports_failures(self):
        class FlakyHost(InMemoryResourceHost):
            def list_resources(self):
                return ["a", "ghost"]

        host = FlakyHost.with_resources(["a"])
        restarter = ResourceRestarter(host, start_delay=0)

        result = await restarter.restart_all()
        await restarter.drain()

        assert result.success is False
        assert result.results == {"a": True, "ghost": False}


# =============================================================================
# Hosts
# =============================================================================


class TestDirectoryResourceHost:
    def test_lists_manifests(self, tmp_path):
        for name in ("[misc]/a", "b"):
            (tmp_path / name).mkdir(parents=True)
            (tmp_path / name / "fxmanifest.lua").write_text(f"name '{name.split('/')[-1]}'\n")

        host = DirectoryResourceHost(tmp_path, current_resource="resource-manager")

        assert host.list_resources() == ["resource-manager", "a", "b"]
        assert host.state("a") is ResourceState.STARTED
        assert host.state("ghost") is ResourceState.MISSING

    def test_stop_and_start(self, tmp_path):
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "fxmanifest.lua").write_text("name 'a'\n")
        host = DirectoryResourceHost(tmp_path)

        host.stop("a")
        assert host.state("a") is ResourceState.STOPPED
        host.start("a")
        assert host.state("a") is ResourceState.STARTED


# =============================================================================
# Artifact Watcher
# =============================================================================


class TestArtifactWatcher:
    def _watcher(self, tmp_path, host):
        return ArtifactWatcher(
            tmp_path,
            ResourceRestarter(host, start_delay=0),
            self_resource=host.current_resource,
        )

    def test_resources_for(self, tmp_path, host):
        watcher = self._watcher(tmp_path, host)
        paths = [
            str(tmp_path / "a" / "client" / "main.js"),
            str(tmp_path / "a" / "fxmanifest.lua"),
            str(tmp_path / "scripts" / "build.js"),
            str(tmp_path / "resource-manager" / "server.js"),
            str(tmp_path / "loose.txt"),
            "/elsewhere/b/main.js",
        ]
        assert watcher.resources_for(paths) == ["a"]

    @pytest.mark.asyncio
    async def test_handle_changes_restarts(self, tmp_path, host):
        watcher = self._watcher(tmp_path, host)

        results = await watcher.handle_changes(
            {
                (Change.modified, str(tmp_path / "b" / "client" / "main.js")),
                (Change.added, str(tmp_path / "ghost" / "fxmanifest.lua")),
            }
        )
        await watcher.restarter.drain()

        assert results == {"b": True, "ghost": False}
        assert host.stopped == ["b"]
        assert host.started == ["b"]

    @pytest.mark.asyncio
    async def test_start_and_stop(self, tmp_path, host):
        watcher = self._watcher(tmp_path / "dist", host)
        task = watcher.start()
        await asyncio.sleep(0.05)

        await watcher.stop()

        assert task.done()
        assert (tmp_path / "dist").is_dir()


# =============================================================================
# Client Against Service
# =============================================================================


class TestClientAgainstService:
    """ControlPlaneClient talking to the real app over an ASGI transport."""

    @pytest.mark.asyncio
    async def test_round_trip(self, host):
        app = create_app(host, API_KEY, start_delay=0)
        client = ControlPlaneClient(
            ControlPlaneConfig(base_url="http://control-plane", api_key=API_KEY),
            transport=httpx.ASGITransport(app=app),
        )

        async with client:
            assert await client.health_check() is True
            restarted = await client.restart("a")
            missing = await client.restart("ghost")
        await app.state.restarter.drain()

        assert restarted.success is True
        assert missing.success is False
        assert missing.status_code == 404
        assert missing.error == "Resource 'ghost' not found or failed to restart"
        assert host.started == ["a"]

    @pytest.mark.asyncio
    async def test_wrong_key(self, host):
        app = create_app(host, API_KEY, start_delay=0)
        client = ControlPlaneClient(
            ControlPlaneConfig(base_url="http://control-plane", api_key="wrong"),
            transport=httpx.ASGITransport(app=app),
        )

        async with client:
            result = await client.restart_all()

        assert result.success is False
        assert result.status_code == 401
        assert result.error == "Unauthorized: Invalid API key"
        assert host.stopped == []
