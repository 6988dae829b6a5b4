"""
Tests for the work order launcher API.
"""

import pytest
from fastapi.testclient import TestClient

from workorder_launcher.api.app import create_app
from workorder_launcher.errors import RemoteAuthenticationError, RemoteUnavailableError
from workorder_launcher.handlers import CacheHandler


@pytest.fixture
def app(workorder_service, cache_service):
    """Create an app wired to the in-memory ERP fake."""
    app = create_app()
    app.state.workorder_service = workorder_service
    app.state.cache_service = cache_service
    return app


@pytest.fixture
def client(app):
    """Create a test client (runs the lifespan)."""
    with TestClient(app) as client:
        yield client


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Work Order Launcher API"


def test_health_reports_configuration(app, cache_service):
    """Test health check endpoint."""
    app.state.cache_handler = CacheHandler(cache_service=cache_service, erp_configured=True)
    with TestClient(app) as client:
        response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["authenticated"] is False


def test_connection_probe(client):
    response = client.get("/api/test")
    assert response.status_code == 200
    assert response.json() == {"success": True, "uid": 7, "message": "Connected to the ERP"}


def test_workcenters_with_cache_headers(client):
    first = client.get("/api/workcenters")
    second = client.get("/api/workcenters")

    assert first.status_code == 200
    assert [wc["name"] for wc in first.json()] == ["Saw", "Press"]
    assert first.headers["X-Cache-Status"] == "MISS"
    assert first.headers["X-Cache-TTL"] == "3600"
    assert second.headers["X-Cache-Status"] == "HIT"
    assert second.headers["X-Cache-Age"] == "0"
    assert second.headers["X-Cache-Remaining"] == "3600"


def test_workcenter_tags(client):
    response = client.get("/api/workcenters/tags")
    assert response.status_code == 200
    assert response.json() == [{"id": 10, "name": "Metal", "color": 4}]


def test_workorders_grouped(client, fake_erp):
    fake_erp.add_workorder(1, "ready")
    fake_erp.add_workorder(2, "progress")

    response = client.get("/api/workcenters/1/workorders")

    assert response.status_code == 200
    data = response.json()
    assert [wo["id"] for wo in data["ready"]] == [1]
    assert [wo["id"] for wo in data["active"]] == [2]
    assert data["ready"][0]["product"] == {"id": 500, "name": "Steel Frame"}


def test_short_search_returns_empty(client, fake_erp):
    response = client.get("/api/workorders/search", params={"q": "a"})

    assert response.status_code == 200
    assert response.json() == []
    assert response.headers["X-Cache-Status"] == "BYPASS"
    assert fake_erp.calls == []


def test_search(client, fake_erp):
    fake_erp.add_workorder(3, "ready")

    response = client.get("/api/workorders/search", params={"q": "WO/00003"})

    assert response.status_code == 200
    assert [wo["id"] for wo in response.json()] == [3]


def test_get_workorder_not_found(client):
    response = client.get("/api/workorders/99")

    assert response.status_code == 404
    assert response.json() == {"detail": "Work order 99 not found"}


def test_start_then_read_reflects_change(client, fake_erp):
    fake_erp.add_workorder(1, "ready", workcenter_id=1)
    client.get("/api/workcenters/1/workorders")

    response = client.post("/api/workorders/1/start", json={"target_workcenter_id": 1})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "workorder_id": 1,
        "action": "start",
        "previous_state": "ready",
        "new_state": "progress",
    }
    after = client.get("/api/workcenters/1/workorders")
    assert after.headers["X-Cache-Status"] == "MISS"
    assert [wo["id"] for wo in after.json()["active"]] == [1]


def test_start_without_body(client, fake_erp):
    fake_erp.add_workorder(1, "ready")

    response = client.post("/api/workorders/1/start")

    assert response.status_code == 200
    assert fake_erp.calls_to("mrp.workorder", "write") == []


def test_invalid_transition_is_conflict(client, fake_erp):
    fake_erp.add_workorder(1, "ready")

    response = client.post("/api/workorders/1/pause")

    assert response.status_code == 409
    assert "Cannot pause work order 1" in response.json()["detail"]


def test_complete(client, fake_erp):
    fake_erp.add_workorder(1, "progress")

    response = client.post("/api/workorders/1/complete")

    assert response.status_code == 200
    assert response.json()["new_state"] == "done"


def test_remote_unavailable_maps_to_503(client, fake_erp):
    fake_erp.failures[("mrp.workcenter", "search_read")] = RemoteUnavailableError(
        "mrp.workcenter.search_read failed after 3 attempts: timed out", attempts=3
    )

    response = client.get("/api/workcenters")

    assert response.status_code == 503
    assert "after 3 attempts" in response.json()["detail"]


def test_authentication_failure_maps_to_502(client, fake_erp):
    fake_erp.failures[("mrp.workcenter", "search_read")] = RemoteAuthenticationError(
        "Authentication failed: invalid credentials"
    )

    response = client.get("/api/workcenters")

    assert response.status_code == 502


def test_update_specs(client, fake_erp):
    fake_erp.add_workorder(1, "ready")
    fake_erp.operations[901] = {"id": 901, "note": ""}

    response = client.put("/api/workorders/1/specs", json={"note": "Check flatness"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert fake_erp.operations[901]["note"] == "Check flatness"


def test_update_bom_line_validation(client, fake_erp):
    fake_erp.add_workorder(1, "ready")

    assert client.put("/api/workorders/1/bom/5", json={"quantity": -1}).status_code == 422
    assert client.put("/api/workorders/1/bom/5", json={"quantity": 2}).status_code == 404


def test_time_tracking_and_bom(client, fake_erp):
    fake_erp.add_workorder(1, "progress")
    fake_erp.moves[7] = {"id": 7, "_production": 101, "product_id": [600, "Bolt"], "product_uom_qty": 2.0, "quantity": 1.0}

    tracking = client.get("/api/workorders/1/time-tracking")
    bom = client.get("/api/workorders/1/bom")

    assert tracking.status_code == 200
    assert tracking.json() == []
    assert bom.json()[0]["quantity_required"] == 2.0


def test_cache_stats_and_status(client):
    client.get("/api/workcenters")
    client.get("/api/workcenters")

    stats = client.get("/api/cache/stats").json()
    status = client.get("/api/cache/status").json()

    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50
    assert status["namespaces"]["workcenters"]["has_data"] is True
    assert status["namespaces"]["search"]["ttl"] == 0


def test_cache_invalidate(client, fake_erp):
    fake_erp.add_workorder(1, "ready")
    client.get("/api/workcenters")
    client.get("/api/workcenters/1/workorders")

    by_prefix = client.post("/api/cache/invalidate", json={"prefix": "workorders:"})
    by_key = client.post("/api/cache/invalidate", json={"key": "workorders:wc:1"})
    everything = client.post("/api/cache/invalidate")

    assert by_prefix.json()["deleted_count"] == 1
    assert by_key.json()["deleted_count"] == 0
    assert everything.json()["deleted_count"] == 1
    assert client.get("/api/workcenters").headers["X-Cache-Status"] == "MISS"


def test_routes_require_lifespan_wiring(app):
    """Without the lifespan the handler dependencies report the missing layer."""
    client = TestClient(app)

    with pytest.raises(RuntimeError, match="WorkorderHandler not initialized"):
        client.get("/api/workcenters")
    with pytest.raises(RuntimeError, match="CacheHandler not initialized"):
        client.get("/api/cache/stats")
