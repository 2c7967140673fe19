"""
Tests for the FastAPI endpoints.
"""

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient, ASGITransport
from starlette.websockets import WebSocketDisconnect

from flowmachine.main import app
from flowmachine.engine.handlers import handler_registry
from flowmachine.workflows.document_approval import DEMO_FLOW_ID, register_document_approval_flow


# ============================================================
# Sync Test Client (for simple tests)
# ============================================================

@pytest.fixture(scope="module")
def client():
    # Entering the client runs the lifespan, which stores the demo flow
    with TestClient(app) as test_client:
        yield test_client


def simple_flow(name: str, **extra):
    return {
        "name": name,
        "nodes": [
            {"id": "start", "type": "start", "outputs": {"title": "API Doc"}},
            {"id": "create", "type": "createDocument"},
            {"id": "end", "type": "end"},
        ],
        "edges": [
            {"id": "e1", "source": "start", "target": "create"},
            {"id": "e2", "source": "create", "target": "end"},
        ],
        **extra,
    }


class TestRootEndpoints:
    """Tests for root endpoints."""

    def test_root(self, client):
        """Test root endpoint."""
        response = client.get("/")
        assert response.status_code == 200

        data = response.json()
        assert "name" in data
        assert "version" in data
        assert "endpoints" in data
        assert data["demo_flow"] == DEMO_FLOW_ID

    def test_health(self, client):
        """Test health endpoint."""
        response = client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["flows_count"] >= 1


class TestHandlerEndpoints:
    """Tests for handler endpoints."""

    def test_list_handlers(self, client):
        """Test listing handler types."""
        response = client.get("/handlers/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == len(data["handlers"])
        assert "createDocument" in data["handlers"]
        assert "notifyCreator" in data["handlers"]
        assert "start" not in data["handlers"]


class TestFlowEndpoints:
    """Tests for flow endpoints."""

    def test_list_flows(self, client):
        """Test listing flows."""
        response = client.get("/flows/")
        assert response.status_code == 200

        data = response.json()
        assert data["total"] == len(data["flows"])
        assert DEMO_FLOW_ID in [f["flow_id"] for f in data["flows"]]

    def test_get_demo_flow(self, client):
        """Test getting the demo flow."""
        response = client.get(f"/flows/{DEMO_FLOW_ID}")
        assert response.status_code == 200

        data = response.json()
        assert data["flow_id"] == DEMO_FLOW_ID
        assert data["name"] == "Document Approval Demo"
        assert data["node_count"] == 8
        assert data["edge_count"] == 8
        assert data["mermaid_diagram"].startswith("graph TD")
        assert len(data["definition"]["nodes"]) == 8

    def test_get_nonexistent_flow(self, client):
        """Test getting a flow that doesn't exist."""
        response = client.get("/flows/nonexistent-flow")
        assert response.status_code == 404

    def test_create_flow(self, client):
        """Test creating a new flow."""
        response = client.post("/flows/", json=simple_flow("test_flow"))
        assert response.status_code == 201

        data = response.json()
        assert "flow_id" in data
        assert data["name"] == "test_flow"
        assert data["node_count"] == 3
        assert data["edge_count"] == 2

        response = client.get(f"/flows/{data['flow_id']}")
        assert response.status_code == 200
        assert response.json()["node_types"] == ["start", "createDocument", "end"]

    def test_create_flow_with_id(self, client):
        """Test creating a flow under a chosen id."""
        response = client.post("/flows/", json=simple_flow("named", flow_id="my-flow"))
        assert response.status_code == 201
        assert response.json()["flow_id"] == "my-flow"

    def test_create_flow_unregistered_handler(self, client):
        """Test creating a flow with a node type nobody handles."""
        flow = simple_flow("invalid_flow")
        flow["nodes"][1]["type"] = "nonexistentHandler"

        response = client.post("/flows/", json=flow)
        assert response.status_code == 400
        assert "nonexistentHandler" in response.json()["detail"]

    def test_create_flow_without_start(self, client):
        """Test creating a flow that has no start node."""
        flow = {
            "name": "no_start",
            "nodes": [{"id": "end", "type": "end"}],
            "edges": [],
        }

        response = client.post("/flows/", json=flow)
        assert response.status_code == 400
        assert "start" in response.json()["detail"]

    def test_create_flow_dangling_edge(self, client):
        """Test creating a flow with an edge to a missing node."""
        flow = simple_flow("dangling")
        flow["edges"].append({"id": "e3", "source": "create", "target": "ghost"})

        response = client.post("/flows/", json=flow)
        assert response.status_code == 400
        assert "ghost" in response.json()["detail"]

    def test_create_flow_malformed(self, client):
        """Test that a body missing required fields is rejected."""
        response = client.post("/flows/", json={"nodes": []})
        assert response.status_code == 422

    def test_delete_flow(self, client):
        """Test deleting a flow."""
        flow_id = client.post("/flows/", json=simple_flow("to_delete")).json()["flow_id"]

        response = client.delete(f"/flows/{flow_id}")
        assert response.status_code == 204

        assert client.get(f"/flows/{flow_id}").status_code == 404
        assert client.delete(f"/flows/{flow_id}").status_code == 404


class TestRunEndpoints:
    """Tests for running flows and reading runs back."""

    def test_run_demo_flow(self, client):
        """Test running the demo flow."""
        response = client.post(f"/flows/{DEMO_FLOW_ID}/run")
        assert response.status_code == 200

        data = response.json()
        assert "run_id" in data
        assert data["status"] == "completed"
        assert data["error"] is None
        assert data["result"]["subject"] == "Document approved: Important Contract"
        assert data["metrics"]["node_count"] == 6
        assert data["metrics"]["edge_count"] == 5
        assert data["trace"]["final_node_id"] == "end"

    def test_run_with_inputs(self, client):
        """Test that run inputs reach the start node's outputs."""
        response = client.post(
            f"/flows/{DEMO_FLOW_ID}/run",
            json={"inputs": {"title": "Memo", "content": "Too short"}},
        )
        assert response.status_code == 200

        data = response.json()
        path = [n["node_id"] for n in data["trace"]["node_executions"]]
        assert path == ["start", "create", "review", "reject", "notifyRejected", "end"]
        assert data["result"]["subject"] == "Document rejected: Memo"

    def test_run_inputs_do_not_change_stored_flow(self, client):
        """Test that inputs for one run leave the stored definition alone."""
        client.post(f"/flows/{DEMO_FLOW_ID}/run", json={"inputs": {"title": "Memo"}})

        data = client.get(f"/flows/{DEMO_FLOW_ID}").json()
        start = next(n for n in data["definition"]["nodes"] if n["id"] == "start")
        assert start["outputs"] == {}

    def test_run_nonexistent_flow(self, client):
        """Test running a flow that doesn't exist."""
        response = client.post("/flows/nonexistent-flow/run")
        assert response.status_code == 404

    def test_failed_run(self, client):
        """Test that a failing handler gives a failed run with its error."""
        async def explode(inputs):
            raise RuntimeError("handler exploded")

        handler_registry.register("explode", explode)
        try:
            flow = simple_flow("exploding")
            flow["nodes"][1]["type"] = "explode"
            flow_id = client.post("/flows/", json=flow).json()["flow_id"]

            response = client.post(f"/flows/{flow_id}/run")
        finally:
            handler_registry.unregister("explode")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"
        assert data["error"] == "handler exploded"
        assert data["result"] is None
        failed = data["trace"]["node_executions"][-1]
        assert failed["node_id"] == "create"
        assert failed["outputs"]["error"] == "handler exploded"

    def test_get_run(self, client):
        """Test reading a run back by id."""
        run_id = client.post(f"/flows/{DEMO_FLOW_ID}/run").json()["run_id"]

        response = client.get(f"/runs/{run_id}")
        assert response.status_code == 200

        data = response.json()
        assert data["run_id"] == run_id
        assert data["flow_id"] == DEMO_FLOW_ID
        assert data["completed_at"] is not None

    def test_get_nonexistent_run(self, client):
        """Test reading a run that doesn't exist."""
        response = client.get("/runs/nonexistent-run")
        assert response.status_code == 404

    def test_list_runs(self, client):
        """Test listing runs, with and without a flow filter."""
        flow_id = client.post("/flows/", json=simple_flow("listed")).json()["flow_id"]
        client.post(f"/flows/{flow_id}/run")
        client.post(f"/flows/{DEMO_FLOW_ID}/run")

        data = client.get("/runs/").json()
        assert data["total"] >= 2

        data = client.get("/runs/", params={"flow_id": flow_id}).json()
        assert data["total"] == 1
        assert data["runs"][0]["flow_id"] == flow_id


# ============================================================
# WebSocket Tests
# ============================================================

class TestWebSocket:
    """Tests for streaming runs over a WebSocket."""

    def test_stream_run(self, client):
        """Test that every node execution is streamed before completion."""
        with client.websocket_connect(f"/ws/run/{DEMO_FLOW_ID}") as websocket:
            websocket.send_json({"action": "start", "inputs": {}})

            started = websocket.receive_json()
            assert started == {"type": "started", "flow_id": DEMO_FLOW_ID}

            steps = []
            message = websocket.receive_json()
            while message["type"] == "step":
                steps.append(message)
                message = websocket.receive_json()

        assert [s["step"] for s in steps] == [1, 2, 3, 4, 5, 6]
        assert steps[0]["node_id"] == "start"
        assert steps[-1]["node_id"] == "end"
        assert message["type"] == "completed"
        assert message["status"] == "completed"
        assert message["result"]["notificationSent"] is True

    def test_unknown_action(self, client):
        """Test that anything but 'start' is refused."""
        with client.websocket_connect(f"/ws/run/{DEMO_FLOW_ID}") as websocket:
            websocket.send_json({"action": "subscribe"})
            message = websocket.receive_json()

        assert message["type"] == "error"

    def test_unknown_flow(self, client):
        """Test connecting for a flow that doesn't exist."""
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/run/nonexistent-flow"):
                pass

        assert exc_info.value.code == 4004


# ============================================================
# Async Tests (for async endpoints)
# ============================================================

@pytest.mark.asyncio
async def test_run_demo_flow_async():
    """Test running the demo flow through an async client."""
    await register_document_approval_flow()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post(
            f"/flows/{DEMO_FLOW_ID}/run",
            json={"inputs": {"creator": "alice"}},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "completed"
        assert data["result"]["recipient"] == "alice"

        run_response = await ac.get(f"/runs/{data['run_id']}")
        assert run_response.status_code == 200


@pytest.mark.asyncio
async def test_run_nonexistent_flow_async():
    """Test running a flow that doesn't exist."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/flows/nonexistent-flow/run", json={"inputs": {}})
        assert response.status_code == 404


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
