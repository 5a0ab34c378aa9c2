from fastapi.testclient import TestClient

from tests.shared_stubs import StubFlowService
from vibe_ops.logic.retry import RetryPolicy
from vibe_ops.main import app, get_flow_store, get_notifier, get_retry_policy
from vibe_ops.services.notifications import NodesEdgesNotifier


def _override(flows: StubFlowService, notifier: NodesEdgesNotifier | None = None) -> None:
    app.dependency_overrides[get_flow_store] = lambda: flows
    app.dependency_overrides[get_retry_policy] = lambda: RetryPolicy.no_delay()
    app.dependency_overrides[get_notifier] = lambda: notifier or NodesEdgesNotifier()


def test_apply_operations_endpoint():
    _override(StubFlowService())
    client = TestClient(app)

    response = client.post(
        "/api/v1/operations/apply",
        json={
            "resource": {"plot": {"scenarios": []}},
            "operations": [
                {"path": "plot.scenarios.append", "operation": "put", "value": {"name": "Intro"}},
                {"path": "nowhere.at.all", "operation": "set", "value": 1},
            ],
        },
    )
    assert response.status_code == 200

    data = response.json()
    assert data["result"] == {"plot": {"scenarios": [{"name": "Intro", "description": ""}]}}
    assert data["success_count"] == 1
    assert data["errors"][0]["kind"] == "NoProcessorFound"
    assert data["summary"] == "Applied 1 of 2 operations, 1 failed"

    app.dependency_overrides.clear()


def test_create_flow_seeds_start_and_end_nodes():
    flows = StubFlowService()
    _override(flows)
    client = TestClient(app)

    response = client.post("/api/v1/flows", json={"name": "Quest", "flow_id": "flow-9"})
    assert response.status_code == 200
    assert [node["type"] for node in response.json()["nodes"]] == ["start", "end"]

    fetched = client.get("/api/v1/flows/flow-9")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Quest"

    app.dependency_overrides.clear()


def test_get_missing_flow_returns_404():
    _override(StubFlowService())
    client = TestClient(app)

    response = client.get("/api/v1/flows/missing")
    assert response.status_code == 404

    app.dependency_overrides.clear()


def test_invalid_payload_is_rejected():
    _override(StubFlowService())
    client = TestClient(app)

    response = client.post("/api/v1/operations/apply", json={"resource": {}})
    assert response.status_code == 422

    app.dependency_overrides.clear()


def test_flow_socket_streams_node_updates():
    flows = StubFlowService({"flow-1": {"id": "flow-1", "nodes": [], "edges": []}})
    notifier = NodesEdgesNotifier()
    _override(flows, notifier)

    with TestClient(app) as client:
        with client.websocket_connect("/ws/flows/flow-1") as websocket:
            websocket.send_json({"hello": "world"})
            assert websocket.receive_json() == {"ack": {"hello": "world"}}

            response = client.post(
                "/api/v1/operations/apply",
                json={
                    "resource": {"flow": {"id": "flow-1", "nodes": [], "edges": []}},
                    "operations": [
                        {"path": "flow.nodes", "operation": "put", "value": {"id": "start", "nodeType": "start"}}
                    ],
                },
            )
            assert response.status_code == 200
            assert response.json()["errors"] == []

            message = websocket.receive_json()
            assert message["flow_id"] == "flow-1"
            assert message["nodes"][0]["id"] == "start"

    app.dependency_overrides.clear()
