"""Suraksha Backend — External Data Fetchers (Nominatim, OpenWeatherMap, DuckDuckGo)"""

import math
import asyncio
import logging
from typing import Any, Optional

import httpx

from config import (
    OPENWEATHERMAP_API_KEY, OPENWEATHERMAP_PLACEHOLDER,
    NOMINATIM_REVERSE_URL, OPENWEATHERMAP_URL, DUCKDUCKGO_URL, USER_AGENT,
    GEO_TIMEOUT, WEATHER_TIMEOUT, SEARCH_TIMEOUT,
    UNKNOWN_LOCATION, DEFAULT_BBOX_PAD, URBAN_PLACE_TYPES,
    WEATHER_DEFAULTS, MAX_VISIBILITY_M, CRIME_QUERY_TEMPLATES, CORPUS_LIMIT,
)
from errors import ConfigurationError, WeatherFetchError
from models import GeoContext, WeatherSnapshot, SearchResult

logger = logging.getLogger("suraksha.fetchers")


def _num(value: Any, default: float) -> float:
    """Coerce an upstream numeric field, falling back to default when missing or not finite."""
    if value is None or isinstance(value, bool):
        return default
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    return out if math.isfinite(out) else default


# ─────────────────────────── Reverse Geocode ────────────────────

def default_bounding_box(lat: float, lon: float) -> list[float]:
    return [lat - DEFAULT_BBOX_PAD, lat + DEFAULT_BBOX_PAD, lon - DEFAULT_BBOX_PAD, lon + DEFAULT_BBOX_PAD]


def parse_bounding_box(raw: Any) -> Optional[list[float]]:
    """Validate a [south, north, west, east] box. Returns None if it is unusable."""
    if not isinstance(raw, (list, tuple)) or len(raw) != 4:
        return None
    try:
        south, north, west, east = (float(v) for v in raw)
    except (TypeError, ValueError):
        return None
    if not all(math.isfinite(v) for v in (south, north, west, east)):
        return None
    if south > north or west > east:
        return None
    if not (-90 <= south and north <= 90 and -180 <= west and east <= 180):
        return None
    return [south, north, west, east]


def fallback_geo_context(lat: float, lon: float) -> GeoContext:
    return GeoContext(
        locationName=UNKNOWN_LOCATION,
        boundingBox=default_bounding_box(lat, lon),
        isUrban=False,
    )


def _geo_context_from_nominatim(lat: float, lon: float, data: dict) -> GeoContext:
    address = data.get("address") or {}
    parts = [address.get(k) for k in ("suburb", "city", "state", "country")]
    name = ", ".join(str(p).strip() for p in parts if p and str(p).strip())

    bbox = parse_bounding_box(data.get("boundingbox"))
    if bbox is None:
        if data.get("boundingbox") is not None:
            logger.warning(f"Discarding malformed bounding box from Nominatim: {data.get('boundingbox')}")
        bbox = default_bounding_box(lat, lon)

    place_type = (data.get("extratags") or {}).get("place") or data.get("type")

    return GeoContext(
        locationName=name or UNKNOWN_LOCATION,
        boundingBox=bbox,
        isUrban=place_type in URBAN_PLACE_TYPES,
    )


async def resolve_geo_context(lat: float, lon: float, client: httpx.AsyncClient) -> GeoContext:
    """Reverse-geocode coordinates into a name, bounding box and urban flag.

    Never raises: any network, timeout or parsing problem yields the
    "Unknown Location" context with a ±0.01° box around the point.
    """
    try:
        r = await client.get(
            NOMINATIM_REVERSE_URL,
            params={"lat": lat, "lon": lon, "format": "json", "extratags": 1},
            headers={"User-Agent": USER_AGENT},
            timeout=GEO_TIMEOUT,
        )
        if r.status_code != 200:
            logger.warning(f"Nominatim request failed with status: {r.status_code}")
            return fallback_geo_context(lat, lon)
        data = r.json()
        if not isinstance(data, dict) or "error" in data:
            logger.warning(f"Nominatim returned no usable result for ({lat:.4f}, {lon:.4f})")
            return fallback_geo_context(lat, lon)
        ctx = _geo_context_from_nominatim(lat, lon, data)
        logger.info(f"Geo context: {ctx.locationName} (urban={ctx.isUrban})")
        return ctx
    except Exception as e:
        logger.warning(f"Nominatim reverse geocode error: {e}")
        return fallback_geo_context(lat, lon)


# ─────────────────────────── Weather ────────────────────────────

def weather_api_key() -> str:
    """Return the configured OpenWeatherMap key or raise ConfigurationError."""
    key = OPENWEATHERMAP_API_KEY
    if not key or key == OPENWEATHERMAP_PLACEHOLDER:
        raise ConfigurationError("OpenWeatherMap API key is not configured.")
    return key


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def clip_visibility(visibility_m: float) -> float:
    # OpenWeatherMap reports visibility up to 10 km
    return min(MAX_VISIBILITY_M, max(0.0, visibility_m))


def parse_weather(data: dict) -> WeatherSnapshot:
    """Map an OpenWeatherMap current-weather body onto a WeatherSnapshot.

    Missing fields take the documented defaults; physically impossible values
    are clipped (humidity to 0-100, visibility to 0-10 km, the rest to >= 0).
    """
    main = _section(data, "main")
    wind = _section(data, "wind")
    rain = _section(data, "rain")
    weather_list = data.get("weather")
    if not isinstance(weather_list, list):
        weather_list = []

    condition = WEATHER_DEFAULTS["condition"]
    if weather_list and isinstance(weather_list[0], dict) and weather_list[0].get("main"):
        condition = str(weather_list[0]["main"])

    wind_ms = max(0.0, _num(wind.get("speed"), WEATHER_DEFAULTS["wind_speed_ms"]))
    visibility_m = clip_visibility(_num(data.get("visibility"), WEATHER_DEFAULTS["visibility_m"]))

    return WeatherSnapshot(
        temperature=_num(main.get("temp"), WEATHER_DEFAULTS["temperature"]),
        rainfall_mm=max(0.0, _num(rain.get("1h"), WEATHER_DEFAULTS["rainfall_mm"])),
        wind_speed_kmh=wind_ms * 3.6,
        humidity=min(100.0, max(0.0, _num(main.get("humidity"), WEATHER_DEFAULTS["humidity"]))),
        condition=condition,
        visibility_km=visibility_m / 1000,
    )


async def fetch_weather(lat: float, lon: float, client: httpx.AsyncClient) -> WeatherSnapshot:
    """Fetch current conditions from OpenWeatherMap.

    Raises ConfigurationError without a key and WeatherFetchError on any
    upstream failure; the environmental index cannot be computed without it.
    """
    api_key = weather_api_key()
    try:
        r = await client.get(
            OPENWEATHERMAP_URL,
            params={"lat": lat, "lon": lon, "appid": api_key, "units": "metric"},
            timeout=WEATHER_TIMEOUT,
        )
    except httpx.HTTPError as e:
        raise WeatherFetchError(f"OpenWeatherMap request failed: {type(e).__name__}") from e

    if r.status_code != 200:
        raise WeatherFetchError(f"OpenWeatherMap error {r.status_code}: {r.text[:200]}")
    try:
        data = r.json()
    except ValueError as e:
        raise WeatherFetchError("OpenWeatherMap returned a non-JSON body") from e
    if not isinstance(data, dict):
        raise WeatherFetchError("OpenWeatherMap returned an unexpected payload")

    snapshot = parse_weather(data)
    logger.info(
        f"Weather: {snapshot.condition}, {snapshot.temperature:.1f}°C, "
        f"rain {snapshot.rainfall_mm:.1f}mm/h, wind {snapshot.wind_speed_kmh:.1f}km/h"
    )
    return snapshot


# ─────────────────────────── Crime Signal Search ────────────────

def build_crime_queries(location: str) -> list[str]:
    return [t.format(location=location) for t in CRIME_QUERY_TEMPLATES]


def _topic_texts(topics: list) -> list[str]:
    texts = []
    for topic in topics:
        if not isinstance(topic, dict):
            continue
        if topic.get("Text"):
            texts.append(str(topic["Text"]))
        # Grouped topics nest their entries one level down
        if isinstance(topic.get("Topics"), list):
            texts.extend(_topic_texts(topic["Topics"]))
    return texts


def parse_search_response(data: Any) -> SearchResult:
    if not isinstance(data, dict):
        return SearchResult()
    related = data.get("RelatedTopics")
    results = data.get("Results")
    return SearchResult(
        related_topics=_topic_texts(related) if isinstance(related, list) else [],
        abstract=data.get("AbstractText") or None,
        results=_topic_texts(results) if isinstance(results, list) else [],
    )


async def _search_text(query: str, client: httpx.AsyncClient) -> SearchResult:
    """Run one DuckDuckGo query. A failed query contributes nothing."""
    try:
        r = await client.get(
            DUCKDUCKGO_URL,
            params={"q": query, "format": "json", "no_html": 1},
            timeout=SEARCH_TIMEOUT,
        )
        if r.status_code != 200:
            logger.warning(f"DuckDuckGo API request failed for query \"{query}\" with status: {r.status_code}")
            return SearchResult()
        return parse_search_response(r.json())
    except Exception as e:
        logger.warning(f"DuckDuckGo search error for \"{query}\": {e}")
        return SearchResult()


def build_corpus(responses: list[SearchResult], limit: int = CORPUS_LIMIT) -> list[str]:
    """Flatten responses in order, drop duplicates (first occurrence wins) and cap."""
    seen: set[str] = set()
    corpus: list[str] = []
    for res in responses:
        texts = list(res.related_topics)
        if res.abstract:
            texts.append(res.abstract)
        texts.extend(res.results)
        for text in texts:
            if text in seen:
                continue
            seen.add(text)
            corpus.append(text)
    return corpus[:limit]


async def search_crime_news(location: str, client: httpx.AsyncClient) -> list[str]:
    """Gather crime-related text snippets for a location name.

    All template queries are sent at once and every one is awaited before the
    corpus is assembled.
    """
    if not location or not location.strip():
        return []

    queries = build_crime_queries(location.strip())
    responses = await asyncio.gather(*(_search_text(q, client) for q in queries))
    corpus = build_corpus(list(responses))
    logger.info(f"Crime search: {len(corpus)} snippets for {location}")
    return corpus
