import pytest
from fastapi.testclient import TestClient

from quickroute.core.config import settings
from quickroute.main import app
from quickroute.services import route_planner as route_planner_module

from conftest import FakeDirections, FakeGeocoder

PLAN_URL = f"{settings.API_V1_STR}/route/plan"


@pytest.fixture
def fakes(monkeypatch):
    geocoder = FakeGeocoder()
    directions = FakeDirections()
    monkeypatch.setattr(route_planner_module, "geocoding_service", geocoder)
    monkeypatch.setattr(route_planner_module, "directions_service", directions)
    return geocoder, directions


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_plan_route_returns_ordered_legs(client: TestClient, fakes):
    response = client.post(
        PLAN_URL,
        json={
            "origin": "P0",
            "intermediate_destinations": ["P1", "P2", "P3"],
            "final_stop": "P4",
            "transport_mode": "walking",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["order"] == [0, 3, 1, 2, 4]
    assert [(leg["source_address"], leg["destination_address"]) for leg in body["legs"]] == [
        ("P0", "P3"),
        ("P3", "P1"),
        ("P1", "P2"),
        ("P2", "P4"),
    ]
    assert body["total_duration_s"] == 600.0
    assert body["predicted_duration_s"] == 600.0
    assert body["total_duration_text"] == "10 min"
    assert body["total_distance_text"] == "6.0 km"
    assert body["transport_mode"] == "walking"
    assert body["legs"][0]["geometry"][0] == [body["legs"][0]["source"]["lat"], body["legs"][0]["source"]["lon"]]


def test_plan_route_without_final_stop_is_unprocessable(client: TestClient, fakes):
    geocoder, _ = fakes

    response = client.post(PLAN_URL, json={"origin": "P0"})

    assert response.status_code == 422
    assert "origin and a final stop" in response.json()["detail"]
    assert geocoder.calls == []


def test_plan_route_unknown_address_is_not_found(client: TestClient, fakes):
    response = client.post(PLAN_URL, json={"origin": "P0", "final_stop": "Atlantis"})

    assert response.status_code == 404
    assert "Atlantis" in response.json()["detail"]


def test_plan_route_provider_outage_is_service_unavailable(client: TestClient, monkeypatch):
    monkeypatch.setattr(route_planner_module, "geocoding_service", FakeGeocoder(failing=["P0"]))
    monkeypatch.setattr(route_planner_module, "directions_service", FakeDirections())

    response = client.post(PLAN_URL, json={"origin": "P0", "final_stop": "P1"})

    assert response.status_code == 503


def test_plan_route_rejects_unknown_transport_mode(client: TestClient, fakes):
    response = client.post(
        PLAN_URL, json={"origin": "P0", "final_stop": "P1", "transport_mode": "teleport"}
    )

    assert response.status_code == 422
