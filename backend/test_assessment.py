import asyncio

import httpx
import pytest

import assessment
import data_fetchers
from assessment import assess_risk, assess_environment
from errors import ConfigurationError, WeatherFetchError
from models import CrimeIncident

pytestmark = pytest.mark.anyio

SHIMLA = (31.104, 77.173)


class _Upstream:
    """Routes fake upstream calls by host and records them."""

    def __init__(self, nominatim, weather, search=None):
        self.nominatim = nominatim
        self.weather = weather
        self.search = search or (lambda r: httpx.Response(200, json={
            "RelatedTopics": [{"Text": f"Report: {r.url.params['q']}"}],
        }))
        self.hosts: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.hosts.append(request.url.host)
        if request.url.host == "nominatim.openstreetmap.org":
            return self.nominatim(request)
        if request.url.host == "api.openweathermap.org":
            return self.weather(request)
        if request.url.host == "api.duckduckgo.com":
            return self.search(request)
        return httpx.Response(404)


class _FakeExtractor:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, corpus, context):
        self.calls.append((list(corpus), context))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def upstream(nominatim_payload, owm_payload):
    return _Upstream(
        nominatim=lambda r: httpx.Response(200, json=nominatim_payload),
        weather=lambda r: httpx.Response(200, json=owm_payload),
    )


async def test_full_pipeline_with_severe_incident(make_client, upstream):
    extractor = _FakeExtractor(result=[
        CrimeIncident(lat=31.105, lon=77.17, crime_type="robbery", severity="high",
                      summary="Tourist robbed at knifepoint on Mall Road.",
                      source_url="https://example.com/shimla-robbery"),
    ])
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)

    assert result.locationName == "Mall Road, Shimla, Himachal Pradesh, India"
    assert result.boundingBox == [31.09, 31.12, 77.15, 77.19]
    assert result.riskTag == "high risk"
    assert result.safetyScore <= 40
    assert len(result.crimeHotspots) == 1
    assert result.crimeHotspots[0].id.startswith("crime-")
    assert "robbery" in result.justification

    corpus, context = extractor.calls[0]
    assert len(corpus) == 9
    assert (context.lat, context.lon) == SHIMLA
    assert upstream.hosts.count("api.duckduckgo.com") == 9


async def test_no_incidents_scores_on_environment(make_client, upstream):
    extractor = _FakeExtractor(result=[])
    async with make_client(upstream) as client:
        env = await assess_environment(*SHIMLA, client=client)
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)

    assert env.isUrban is True
    assert env.crimeWeight == 0.40
    assert result.safetyScore == round(100 - 0.6 * env.rawRiskIndex)
    assert result.crimeHotspots == []
    assert "No recent crime reports" in result.justification


async def test_missing_weather_key_is_fatal(monkeypatch, make_client, upstream):
    monkeypatch.setattr(data_fetchers, "OPENWEATHERMAP_API_KEY", "")
    extractor = _FakeExtractor(result=[])
    async with make_client(upstream) as client:
        with pytest.raises(ConfigurationError):
            await assess_risk(*SHIMLA, client=client, extractor=extractor)
    assert upstream.hosts == []
    assert extractor.calls == []


async def test_weather_outage_is_fatal(make_client, upstream):
    upstream.weather = lambda r: httpx.Response(502, text="bad gateway")
    async with make_client(upstream) as client:
        with pytest.raises(WeatherFetchError):
            await assess_risk(*SHIMLA, client=client, extractor=_FakeExtractor(result=[]))


async def test_geocode_failure_degrades_and_skips_crime_search(make_client, upstream):
    upstream.nominatim = lambda r: httpx.Response(500)
    extractor = _FakeExtractor(result=[])
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)

    assert result.locationName == "Unknown Location"
    assert result.boundingBox == pytest.approx([31.094, 31.114, 77.163, 77.183])
    assert "api.duckduckgo.com" not in upstream.hosts
    assert extractor.calls == []
    assert "unavailable" in result.justification


async def test_extractor_failure_degrades(make_client, upstream):
    extractor = _FakeExtractor(error=RuntimeError("model overloaded"))
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)
    assert result.crimeHotspots == []
    assert "unavailable" in result.justification


async def test_far_away_incidents_are_discarded(make_client, upstream):
    extractor = _FakeExtractor(result=[
        CrimeIncident(lat=19.07, lon=72.88, crime_type="assault", severity="high"),
    ])
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)
    assert result.crimeHotspots == []
    assert result.riskTag != "high risk"


async def test_antipodal_incident_does_not_break_assessment(make_client, upstream):
    extractor = _FakeExtractor(result=[
        CrimeIncident(lat=-31.104, lon=-102.827, crime_type="theft", severity="low"),
    ])
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)
    assert result.crimeHotspots == []


async def test_slow_extraction_times_out_and_degrades(monkeypatch, make_client, upstream):
    async def slow_extractor(corpus, context):
        await asyncio.sleep(1)
        return []

    monkeypatch.setattr(assessment, "EXTRACTION_TIMEOUT", 0.05)
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=slow_extractor)
    assert result.crimeHotspots == []
    assert "unavailable" in result.justification


async def test_cancellation_propagates_to_caller(make_client, upstream):
    entered = asyncio.Event()

    async def stalled_weather(request):
        entered.set()
        await asyncio.sleep(10)
        return httpx.Response(200, json={})

    upstream.weather = stalled_weather
    extractor = _FakeExtractor(result=[])
    async with make_client(upstream) as client:
        task = asyncio.create_task(assess_risk(*SHIMLA, client=client, extractor=extractor))
        await asyncio.wait_for(entered.wait(), timeout=1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
    assert extractor.calls == []


async def test_all_searches_failing_means_no_crime_data(make_client, upstream):
    upstream.search = lambda r: httpx.Response(503)
    extractor = _FakeExtractor(result=[])
    async with make_client(upstream) as client:
        result = await assess_risk(*SHIMLA, client=client, extractor=extractor)
    assert extractor.calls == []
    assert "unavailable" in result.justification


@pytest.mark.parametrize("lat,lon", [(91.0, 0.0), (0.0, -181.0), (float("nan"), 10.0)])
async def test_invalid_coordinates_are_rejected(lat, lon):
    with pytest.raises(ValueError):
        await assess_risk(lat, lon, extractor=_FakeExtractor(result=[]))
