# -*- coding: utf-8 -*-
"""
Tests for the commune eco-metrics API (api/main.py).

Covers all endpoints, input validation and error handling. Uses FastAPI
TestClient with a mocked AppState so no upstream service is contacted.
"""

from __future__ import annotations

import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.adapters import CircuitBreaker, EventFeed, EventPoint
from src.commune import CommuneResolver, ResolutionOutcome, ResolutionStatus
from src.metrics import CompareResult, MetricsAggregator, MetricsRecord


# ---------------------------------------------------------------------------
# Fixtures: mock the AppState before importing the app
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _mock_app_state(test_config, paris, versailles):
    """Inject mock components in the global AppState.

    Patches state.load() to be a no-op so the lifespan never builds the
    real aggregator. This fixture runs automatically for every test.
    """
    with patch("api.dependencies.AppState.load") as mock_load:
        from api.dependencies import state

        records = {
            "Paris": MetricsRecord(commune=paris, air_quality_index=90, elec_kwh_per_hab=2100.5),
            "Versailles": MetricsRecord(
                commune=versailles, elec_kwh_per_hab=3000.0, elec_estimated=True,
            ),
        }

        aggregator = MagicMock(spec=MetricsAggregator)
        aggregator.config = test_config
        aggregator.adapter_names = ["air_quality", "energy"]
        aggregator.energy_breaker = CircuitBreaker()
        aggregator.build_metrics.side_effect = lambda city: records.get(city.strip())
        aggregator.compare.side_effect = lambda a, b: CompareResult(
            first=records.get(a.strip()), second=records.get(b.strip()),
        )

        resolver = MagicMock(spec=CommuneResolver)
        resolver.lookup.side_effect = lambda name: ResolutionOutcome(
            query=name.strip(),
            status=ResolutionStatus.FOUND if name.strip() in records else ResolutionStatus.NOT_FOUND,
            commune=records[name.strip()].commune if name.strip() in records else None,
        )

        feed = MagicMock(spec=EventFeed)
        point = EventPoint(
            id="n1", title="Sortie oiseaux", latitude=48.7, longitude=2.2,
            category="nature", subtitle="Balade", infos=(("Lieu", "Forêt"),),
        )
        feed.list_events.return_value = [point]
        feed.list_all.return_value = [point, point]

        state.aggregator = aggregator
        state.resolver = resolver
        state.event_feed = feed
        state.start_time = time.time()

        yield mock_load

        # Reset state after each test to avoid cross-test pollution
        state.aggregator = None
        state.resolver = None
        state.event_feed = None


@pytest.fixture
def client() -> TestClient:
    """Return a TestClient wired to the FastAPI app."""
    from api.main import app
    return TestClient(app)


# ===================================================================
# 1. GET /health
# ===================================================================

class TestHealthEndpoint:

    def test_health_returns_200(self, client: TestClient):
        assert client.get("/health").status_code == 200

    def test_health_status_ok(self, client: TestClient):
        data = client.get("/health").json()
        assert data["status"] == "ok"
        assert data["version"]
        assert data["uptime_seconds"] >= 0

    def test_health_reports_adapters_and_breaker(self, client: TestClient):
        from api.dependencies import state

        state.aggregator.energy_breaker.trip()
        data = client.get("/health").json()
        assert data["adapters"] == ["air_quality", "energy"]
        assert data["energy_breaker_tripped"] is True

    def test_health_while_starting(self, client: TestClient):
        from api.dependencies import state

        state.aggregator = None
        data = client.get("/health").json()
        assert data["status"] == "starting"
        assert data["adapters"] == []


# ===================================================================
# 2. GET /departments
# ===================================================================

class TestDepartmentsEndpoint:

    def test_departments_are_idf(self, client: TestClient):
        data = client.get("/departments").json()
        assert data["region_code"] == "11"
        assert data["department_count"] == 8
        codes = [d["code"] for d in data["departments"]]
        assert codes == sorted(codes)
        assert "69" not in codes

    def test_departments_have_names(self, client: TestClient):
        data = client.get("/departments").json()
        names = {d["code"]: d["name"] for d in data["departments"]}
        assert names["95"] == "Val-d'Oise"

    def test_503_when_not_loaded(self, client: TestClient):
        from api.dependencies import state

        state.aggregator = None
        assert client.get("/departments").status_code == 503


# ===================================================================
# 3. GET /communes/{name}
# ===================================================================

class TestCommuneEndpoint:

    def test_found(self, client: TestClient):
        response = client.get("/communes/Versailles")
        assert response.status_code == 200
        data = response.json()
        assert data["department_name"] == "Yvelines"
        assert data["insee_code"] == "78646"

    def test_not_found(self, client: TestClient):
        response = client.get("/communes/Lyon")
        assert response.status_code == 404
        assert "Lyon" in response.json()["detail"]

    def test_registry_unavailable(self, client: TestClient):
        from api.dependencies import state

        state.resolver.lookup.side_effect = None
        state.resolver.lookup.return_value = ResolutionOutcome(
            query="Paris", status=ResolutionStatus.UNAVAILABLE,
        )
        assert client.get("/communes/Paris").status_code == 503


# ===================================================================
# 4. GET /metrics
# ===================================================================

class TestMetricsEndpoint:

    def test_metrics_found(self, client: TestClient):
        response = client.get("/metrics", params={"city": "Paris"})
        assert response.status_code == 200
        data = response.json()
        assert data["commune"]["name"] == "Paris"
        assert data["air_quality_index"] == 90
        assert data["elec_kwh_per_hab"] == pytest.approx(2100.5)
        assert data["gas_kwh_per_hab"] is None
        assert data["elec_estimated"] is False

    def test_estimated_flag(self, client: TestClient):
        data = client.get("/metrics", params={"city": "Versailles"}).json()
        assert data["elec_estimated"] is True

    def test_metrics_not_found(self, client: TestClient):
        response = client.get("/metrics", params={"city": "NoSuchPlaceXYZ"})
        assert response.status_code == 404
        assert "NoSuchPlaceXYZ" in response.json()["detail"]

    def test_metrics_requires_city(self, client: TestClient):
        assert client.get("/metrics").status_code == 422


# ===================================================================
# 5. GET /compare
# ===================================================================

class TestCompareEndpoint:

    def test_compare_both_found(self, client: TestClient):
        response = client.get("/compare", params={"city_a": "Paris", "city_b": "Versailles"})
        assert response.status_code == 200
        data = response.json()
        assert data["city_a"]["commune"]["name"] == "Paris"
        assert data["city_b"]["commune"]["name"] == "Versailles"

    def test_compare_names_failed_city(self, client: TestClient):
        response = client.get("/compare", params={"city_a": "Paris", "city_b": "Lyon"})
        assert response.status_code == 404
        assert "Lyon" in response.json()["detail"]

    def test_compare_first_city_reported_first(self, client: TestClient):
        response = client.get("/compare", params={"city_a": "Atlantis", "city_b": "Lyon"})
        assert "Atlantis" in response.json()["detail"]

    @pytest.mark.parametrize("city_a, city_b", [("P", "Versailles"), ("Paris", "  x ")])
    def test_compare_short_input(self, client: TestClient, city_a, city_b):
        from api.dependencies import state

        response = client.get("/compare", params={"city_a": city_a, "city_b": city_b})
        assert response.status_code == 422
        state.aggregator.compare.assert_not_called()


# ===================================================================
# 6. GET /events
# ===================================================================

class TestEventsEndpoint:

    def test_events_by_category(self, client: TestClient):
        from api.dependencies import state

        response = client.get("/events", params={"category": "nature", "limit": 20})
        assert response.status_code == 200
        data = response.json()
        assert data["event_count"] == 1
        assert data["events"][0]["infos"] == [{"label": "Lieu", "value": "Forêt"}]
        state.event_feed.list_events.assert_called_once_with("nature", 20)

    def test_events_all_categories(self, client: TestClient):
        data = client.get("/events").json()
        assert data["category"] is None
        assert data["event_count"] == 2

    def test_events_invalid_category(self, client: TestClient):
        assert client.get("/events", params={"category": "concerts"}).status_code == 400

    def test_events_skip_projected_coordinates(self, client: TestClient, test_config):
        from api.dependencies import state

        rows = [
            {"uid": "bad", "title": "Lambert-93", "lat": "4880000", "lon": "2.3"},
            {"uid": "ok", "title": "Sortie oiseaux", "geo": {"lat": 48.7, "lon": 2.2}},
        ]
        state.event_feed = EventFeed(test_config)
        with patch.object(EventFeed, "fetch_json", return_value={"results": rows}):
            response = client.get("/events", params={"category": "nature"})
        assert response.status_code == 200
        data = response.json()
        assert data["event_count"] == 1
        assert data["events"][0]["id"] == "ok"

    def test_events_limit_bounds(self, client: TestClient):
        assert client.get("/events", params={"limit": 0}).status_code == 422
        assert client.get("/events", params={"limit": 101}).status_code == 422
