"""Root and health endpoints."""
from fastapi.testclient import TestClient


def test_root(client: TestClient):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "healthy"}


def test_health_db(client: TestClient):
    data = client.get("/health/db").json()
    assert data["database"] == "connected"
    assert data["result"] == 1


def test_health_storage_without_credentials(client: TestClient):
    data = client.get("/health/storage").json()
    assert data["storage"] == "not_configured"
    assert data["status"] == "warning"


def test_validation_errors_are_400_with_cors(client: TestClient, admin_headers):
    response = client.post(
        "/api/gallery/existing",
        json={"src": "x"},
        headers={**admin_headers, "Origin": "http://localhost:5173"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation error"
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
