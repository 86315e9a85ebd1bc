"""Tests for API functionality."""

import pytest
from fastapi.testclient import TestClient

from fixup_slugs.api.app import create_app, generate_token
from fixup_slugs.runtime import build_runtime


@pytest.fixture
def runtime(monkeypatch, tmp_path):
    """In-memory runtime, isolated from any slugs.toml in the cwd."""
    monkeypatch.chdir(tmp_path)
    return build_runtime(db_path=":memory:")


@pytest.fixture
def client(runtime):
    return TestClient(create_app(runtime, token=None))


def test_health_endpoint(client):
    """Test /health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_auth_required(runtime):
    """Test that endpoints require authentication when token is set."""
    token = generate_token()
    client = TestClient(create_app(runtime, token=token))

    assert client.get("/health").status_code == 401
    response = client.get("/health", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401

    response = client.get("/health", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200


def test_generate_token():
    token = generate_token()
    assert len(token) > 20
    assert token != generate_token()


def test_preview_and_validate(client):
    response = client.get("/slugs/preview", params={"name": "ძრავის დიაგნოსტიკა"})
    assert response.json() == {"slug": "dzravis-diagnostika"}

    response = client.get("/slugs/validate", params={"slug": "admin"})
    assert response.json() == {"valid": False, "reason": "Slug 'admin' is reserved"}
    assert client.get("/slugs/validate", params={"slug": "oil-change"}).json()["valid"] is True


def test_create_and_generate(client):
    response = client.post("/service/records", json={"display_name": "Oil Change"})
    assert response.status_code == 201
    assert response.json()["slug"] == "oil-change"

    response = client.get("/service/slugs/generate", params={"name": "Oil Change"})
    assert response.json() == {"slug": "oil-change-2", "unique": True, "error": None}

    response = client.get(
        "/service/slugs/generate", params={"name": "Oil Change", "exclude_id": 1}
    )
    assert response.json()["slug"] == "oil-change"

    # kinds are separate namespaces
    response = client.post("/category/records", json={"display_name": "Oil Change"})
    assert response.json()["slug"] == "oil-change"


def test_create_errors(client):
    client.post("/service/records", json={"display_name": "Oil Change"})

    response = client.post("/service/records", json={"display_name": "X", "slug": "oil-change"})
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "conflict"

    response = client.post("/service/records", json={"display_name": "X", "slug": "Bad Slug"})
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "validation"


def test_resolve(client):
    client.post("/service/records", json={"display_name": "Oil Change"})

    response = client.get("/service/resolve/oil-change")
    assert response.status_code == 200
    assert response.json()["record"]["id"] == 1
    assert response.json()["redirect_to"] is None

    response = client.get("/service/resolve/1-oil-change-tbilisi")
    assert response.json()["redirect_to"] == "oil-change"

    response = client.get("/service/resolve/unknown")
    assert response.status_code == 404
    assert response.json()["redirect"] == "/services"
    assert response.json()["error"] == "not_found"


def test_manual_override_lifecycle(client):
    client.post("/service/records", json={"display_name": "Oil Change"})

    response = client.put("/service/records/1/slug", json={"slug": "engine-oil"})
    assert response.status_code == 200
    assert response.json()["slug_is_manual"] is True

    response = client.patch("/service/records/1", json={"display_name": "Synthetic Oil"})
    assert response.json()["display_name"] == "Synthetic Oil"
    assert response.json()["slug"] == "engine-oil"

    response = client.post("/service/records/1/slug/reset", json={})
    assert response.json()["slug"] == "synthetic-oil"
    assert response.json()["slug_is_manual"] is False

    response = client.patch("/service/records/1", json={"display_name": "Oil Service"})
    assert response.json()["slug"] == "oil-service"


def test_record_errors(client):
    assert client.patch("/service/records/99", json={"display_name": "X"}).status_code == 422
    assert client.put("/service/records/99/slug", json={"slug": "x-y"}).status_code == 422
    assert client.put("/service/records/99/slug", json={"slug": "login"}).status_code == 400


def test_sitemap(client):
    client.post("/service/records", json={"display_name": "Oil Change"})
    client.post("/mechanic/records", json={"display_name": "Giorgi"})

    response = client.get("/sitemap.xml")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<loc>https://fixup.ge/service/oil-change</loc>" in response.text
    assert "<loc>https://fixup.ge/mechanic/giorgi</loc>" in response.text


def test_oversized_record_ids(client):
    client.post("/service/records", json={"display_name": "Oil Change"})
    huge = "99999999999999999999"

    response = client.get(f"/service/resolve/{huge}")
    assert response.status_code == 404
    assert response.json()["redirect"] == "/services"
    assert client.patch(f"/service/records/{huge}", json={"display_name": "X"}).status_code == 404
    assert client.put(f"/service/records/{huge}/slug", json={"slug": "x-y"}).status_code == 404
    assert client.post(f"/service/records/{huge}/slug/reset", json={}).status_code == 422
