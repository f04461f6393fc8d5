"""
Integration tests for the permission endpoints.

HTTP routes use httpx AsyncClient over ASGITransport; the observer WebSocket
runs through Starlette's TestClient with the app lifespan.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from server.app import create_app
from server.dependencies import get_broker


@pytest.fixture
async def client(services):
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def _wait_pending(broker, count: int = 1) -> list:
    for _ in range(500):
        pending = broker.list_pending()
        if len(pending) >= count:
            return pending
        await asyncio.sleep(0.002)
    raise AssertionError(f"expected {count} pending requests")


class TestSubmitAndRespond:
    @pytest.mark.asyncio
    async def test_submit_blocks_until_approved(self, client, services):
        broker = services["broker"]
        submit = asyncio.create_task(
            client.post(
                "/api/permissions/request-mcp",
                json={"action": "Write", "description": "Write /tmp/a.txt", "resource": "/tmp/a.txt"},
            )
        )
        [request] = await _wait_pending(broker)

        pending = await client.get("/api/permissions/pending")
        assert pending.status_code == 200
        body = pending.json()
        assert body["count"] == 1
        assert body["permissions"][0]["id"] == request.id
        assert body["permissions"][0]["status"] == "pending"

        resp = await client.post(
            "/api/permissions/respond",
            json={"permissionId": request.id, "approved": True},
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "success": True,
            "message": "Permission approved",
            "permissionId": request.id,
            "approved": True,
        }

        result = await submit
        assert result.status_code == 200
        assert result.json() == {"approved": True, "reason": "Approved by user"}

    @pytest.mark.asyncio
    async def test_denied_with_reason(self, client, services):
        submit = asyncio.create_task(
            client.post("/api/permissions/request-mcp", json={"action": "Bash", "description": "Run rm"})
        )
        [request] = await _wait_pending(services["broker"])

        await client.post(
            "/api/permissions/respond",
            json={"permissionId": request.id, "approved": False, "reason": "nope"},
        )

        assert (await submit).json() == {"approved": False, "reason": "nope"}

    @pytest.mark.asyncio
    async def test_second_response_is_404(self, client, services):
        submit = asyncio.create_task(
            client.post("/api/permissions/request-mcp", json={"action": "Bash", "description": "Run ls"})
        )
        [request] = await _wait_pending(services["broker"])

        first = await client.post(
            "/api/permissions/respond", json={"permissionId": request.id, "approved": True}
        )
        second = await client.post(
            "/api/permissions/respond", json={"permissionId": request.id, "approved": False}
        )

        assert first.status_code == 200
        assert second.status_code == 404
        assert second.json() == {"error": "Permission request not found or already processed"}
        assert (await submit).json()["approved"] is True

    @pytest.mark.asyncio
    async def test_submit_missing_fields_is_400(self, client, services):
        resp = await client.post("/api/permissions/request-mcp", json={"action": "Write"})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Action and description are required"}
        assert services["broker"].list_pending() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{"approved": True}, {"permissionId": "x"}, {"permissionId": "x", "approved": "yes"}],
    )
    async def test_respond_missing_fields_is_400(self, client, services, body):
        resp = await client.post("/api/permissions/respond", json=body)
        assert resp.status_code in (400, 422)

    @pytest.mark.asyncio
    async def test_pending_empty(self, client, services):
        resp = await client.get("/api/permissions/pending")
        assert resp.json() == {"permissions": [], "count": 0}


class TestLegacyRequest:
    @pytest.mark.asyncio
    async def test_auto_approves(self, client, services):
        resp = await client.post(
            "/api/permissions/request", json={"action": "Read", "description": "Read a file"}
        )

        body = resp.json()
        assert resp.status_code == 200
        assert body["approved"] is True
        assert body["workspace"] == str(services["workspaces"].base_dir)
        assert services["broker"].list_pending() == []

    @pytest.mark.asyncio
    async def test_missing_fields_is_400(self, client, services):
        resp = await client.post("/api/permissions/request", json={"description": "Read"})
        assert resp.status_code == 400


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client, services):
        resp = await client.get("/health")

        body = resp.json()
        assert body["status"] == "ok"
        assert body["workspace"]["exists"] is True
        assert body["workspace"]["path"] == str(services["workspaces"].base_dir)
        assert body["workspace"]["files"] == ["README.md"]
        assert body["sessions"] == 0

    @pytest.mark.asyncio
    async def test_status(self, client, services):
        resp = await client.get("/api/status")

        body = resp.json()
        assert body["connected"] is True
        assert body["pendingPermissions"] == 0
        assert body["observers"] == 0


class TestObserverWebSocket:
    @pytest.fixture
    def live_client(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AGENTGATE_CONSOLE_WORKSPACE_DIR", str(tmp_path / "usercontent"))
        with TestClient(create_app()) as c:
            yield c

    def test_request_and_response_frames(self, live_client):
        payload = {"action": "Write", "description": "Write notes.txt", "resource": "notes.txt"}
        with ThreadPoolExecutor(max_workers=1) as pool:
            with live_client.websocket_connect("/api/permissions/ws") as ws:
                connected = ws.receive_json()
                assert connected["type"] == "connected"
                assert connected["message"] == "Permission WebSocket connected"

                pending = pool.submit(live_client.post, "/api/permissions/request-mcp", json=payload)

                created = ws.receive_json()
                assert created["type"] == "permission-request"
                assert created["permission"]["action"] == "Write"
                assert created["permission"]["resource"] == "notes.txt"

                resp = live_client.post(
                    "/api/permissions/respond",
                    json={"permissionId": created["permission"]["id"], "approved": True},
                )
                assert resp.status_code == 200

                resolved = ws.receive_json()
                assert resolved["type"] == "permission-response"
                assert resolved["response"]["id"] == created["permission"]["id"]
                assert resolved["response"]["status"] == "approved"

            assert pending.result(timeout=5).json() == {"approved": True, "reason": "Approved by user"}

    def test_late_observer_gets_snapshot(self, live_client):
        payload = {"action": "Bash", "description": "Run make"}
        with ThreadPoolExecutor(max_workers=1) as pool:
            with live_client.websocket_connect("/api/permissions/ws") as first:
                first.receive_json()
                pending = pool.submit(live_client.post, "/api/permissions/request-mcp", json=payload)
                created = first.receive_json()

                with live_client.websocket_connect("/api/permissions/ws") as second:
                    assert second.receive_json()["type"] == "connected"
                    snapshot = second.receive_json()
                    assert snapshot["type"] == "pending-permissions"
                    assert [p["id"] for p in snapshot["permissions"]] == [created["permission"]["id"]]

                live_client.post(
                    "/api/permissions/respond",
                    json={"permissionId": created["permission"]["id"], "approved": False},
                )
                assert first.receive_json()["type"] == "permission-response"

            assert pending.result(timeout=5).json()["approved"] is False
            assert get_broker().list_pending() == []
