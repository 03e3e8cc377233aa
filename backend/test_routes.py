import pytest
from fastapi.testclient import TestClient

import routes
from errors import ConfigurationError, WeatherFetchError
from models import SafetyAssessment


@pytest.fixture
def client():
    return TestClient(routes.app)


def _assessment() -> SafetyAssessment:
    return SafetyAssessment(
        locationName="Panaji, Goa, India",
        boundingBox=[15.47, 15.51, 73.80, 73.85],
        safetyScore=78,
        riskTag="safe",
        justification="Conditions look favourable with low environmental risk (9/100). No recent crime reports were found.",
    )


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_assess_returns_assessment(monkeypatch, client):
    seen = {}

    async def fake_assess(lat, lon):
        seen["coords"] = (lat, lon)
        return _assessment()

    monkeypatch.setattr(routes, "assess_risk", fake_assess)
    r = client.post("/api/assess", json={"lat": 15.49, "lon": 73.83})
    assert r.status_code == 200
    body = r.json()
    assert body["riskTag"] == "safe"
    assert body["crimeHotspots"] == []
    assert seen["coords"] == (15.49, 73.83)


def test_assess_rejects_out_of_range_coordinates(client):
    r = client.post("/api/assess", json={"lat": 120, "lon": 73.83})
    assert r.status_code == 422


@pytest.mark.parametrize("error,status", [
    (ConfigurationError("OpenWeatherMap API key is not configured."), 503),
    (WeatherFetchError("OpenWeatherMap error 500"), 502),
])
def test_assess_maps_fatal_errors(monkeypatch, client, error, status):
    async def failing(lat, lon):
        raise error

    monkeypatch.setattr(routes, "assess_risk", failing)
    r = client.post("/api/assess", json={"lat": 15.49, "lon": 73.83})
    assert r.status_code == status


def test_environment_maps_configuration_error(monkeypatch, client):
    async def failing(lat, lon):
        raise ConfigurationError("missing key")

    monkeypatch.setattr(routes, "assess_environment", failing)
    r = client.get("/api/environment", params={"lat": 15.49, "lon": 73.83})
    assert r.status_code == 503


def test_crime_news_blank_query(client):
    r = client.get("/api/crime-news", params={"query": ""})
    assert r.status_code == 200
    assert r.json() == {"searchResults": []}
