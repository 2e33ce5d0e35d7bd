import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.core import RecommendationEngine
from tests.factories import FIXED_NOW, FakeClock, demo_catalog


@pytest.fixture
def client():
    engine = RecommendationEngine(clock=FakeClock())
    app = create_app(engine=engine)
    with TestClient(app) as client:
        response = client.post(
            "/api/v1/catalog",
            json=[features.model_dump(mode="json") for features in demo_catalog()]
        )
        assert response.status_code == 200
        yield client


def _context(**overrides):
    context = {
        "user_id": "u1",
        "season": "inseason",
        "available_time": 30,
        "available_equipment": ["pucks", "cones"],
        "player_level": "intermediate",
    }
    context.update(overrides)
    return context


def test_catalog_and_recommendations(client):
    response = client.post("/api/v1/recommendations", json={"context": _context(), "limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert len(body["recommendations"]) == 2
    assert body["metadata"]["algorithm"] == "popularity"
    assert "X-Correlation-ID" in response.headers
    assert "X-Request-Duration-Ms" in response.headers


def test_correlation_id_is_echoed(client):
    response = client.get("/health", headers={"X-Correlation-ID": "abc123"})
    assert response.headers["X-Correlation-ID"] == "abc123"


def test_invalid_context_is_rejected(client):
    response = client.post("/api/v1/recommendations", json={"context": _context(available_time=0)})
    assert response.status_code == 422


def test_interactions(client):
    response = client.post("/api/v1/interactions", json={
        "user_id": "u1", "template_id": "t1", "kind": "rated", "rating": 8
    })
    assert response.status_code == 200
    assert response.json()["score"] == pytest.approx(0.8)

    rejected = client.post("/api/v1/interactions", json={
        "user_id": "u1", "template_id": "t1", "kind": "rated", "rating": 11
    })
    assert rejected.status_code == 422

    response = client.post("/api/v1/recommendations", json={"context": _context()})
    assert response.json()["metadata"]["algorithm"] == "hybrid"


def test_usage_performance_and_analytics(client):
    timestamp = FIXED_NOW.isoformat()
    usage = client.post("/api/v1/usage", json={
        "template_id": "t1", "user_id": "u1", "session_id": "s1", "timestamp": timestamp
    })
    assert usage.status_code == 202

    performance = client.post("/api/v1/performance", json={
        "template_id": "t1", "session_id": "s1", "completion_rate": 0.9, "satisfaction": 9, "timestamp": timestamp
    })
    assert performance.status_code == 202

    analytics = client.get("/api/v1/analytics/t1")
    assert analytics.status_code == 200
    assert analytics.json()["total_usage"] == 1
    assert analytics.json()["effectiveness_score"] > 0

    exported = client.get("/api/v1/analytics/t1/export")
    assert exported.status_code == 200
    assert exported.json()["raw_data"]["usage_events"] == 1

    bulk = client.post("/api/v1/analytics/bulk", json={"template_ids": ["t1", "t2"]})
    assert set(bulk.json().keys()) == {"t1", "t2"}

    rankings = client.post("/api/v1/analytics/rankings", json={})
    assert rankings.json()[0]["template_id"] == "t1"


def test_unknown_template_is_404(client):
    assert client.get("/api/v1/analytics/missing").status_code == 404
    assert client.get("/api/v1/similarity/t1/missing").status_code == 404


def test_similarity_explanation(client):
    response = client.get("/api/v1/similarity/t1/t2")
    assert response.status_code == 200
    assert response.json()["score"] == pytest.approx(0.95)


def test_raw_catalog_refresh(client):
    response = client.post("/api/v1/catalog/raw", json=[
        {"id": "raw-1", "name": "Bike Intervals", "type": "CONDITIONING", "equipment": ["bike"]},
    ])
    assert response.status_code == 200
    assert response.json()["templates"] == 1


def test_health_endpoints(client):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/health/live").json()["alive"] is True

    ready = client.get("/health/ready").json()
    assert ready["ready"] is True

    detailed = client.get("/health/detailed").json()
    assert detailed["checks"]["catalog"]["templates"] == 5
    assert detailed["checks"]["persistence"]["status"] == "disabled"


def test_metrics_endpoint(client):
    response = client.get("/metrics")
    assert response.status_code == 200
