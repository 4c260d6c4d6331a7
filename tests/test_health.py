"""Health endpoint tests."""

from fastapi.testclient import TestClient


def test_liveness_returns_alive(client: TestClient) -> None:
    """Liveness endpoint returns 200 with alive status."""
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_with_content_root(client: TestClient) -> None:
    response = client.get("/api/health/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_readiness_without_content_root(client: TestClient, content_root) -> None:
    content_root.rmdir()
    response = client.get("/api/health/ready")
    assert response.status_code == 503
    checks = {c["name"]: c for c in response.json()["checks"]}
    assert checks[f"dir:{content_root}"]["message"] == "Directory not found"


def test_request_id_is_echoed(client: TestClient) -> None:
    response = client.get("/api/health/live", headers={"X-Request-ID": "abc123"})
    assert response.headers["X-Request-ID"] == "abc123"


def test_request_id_is_generated(client: TestClient) -> None:
    response = client.get("/api/sections")
    assert len(response.headers["X-Request-ID"]) == 12
