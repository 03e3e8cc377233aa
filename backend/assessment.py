"""Suraksha Backend — Hybrid risk assessment pipeline.

assess_risk(lat, lon):
  reverse geocode ┐
                  ├─> environmental scoring ─┐
  weather ────────┘                          ├─> synthesis ─> SafetyAssessment
  location name ─> crime search ─> extraction┘

Every call builds its own HTTP client and shares no state with other calls.
"""

import math
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from config import UNKNOWN_LOCATION, EXTRACTION_TIMEOUT
from data_fetchers import (
    resolve_geo_context, fetch_weather, search_crime_news,
    weather_api_key, fallback_geo_context,
)
from extraction import CrimeExtractor, extract_crime_incidents, sanitize_incidents
from models import Coordinate, CrimeIncident, EnvironmentalAssessment, SafetyAssessment
from scoring import compute_environmental_risk, synthesize_assessment

logger = logging.getLogger("suraksha.assessment")


def _check_coordinates(lat: float, lon: float) -> Coordinate:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"Coordinates must be finite, got ({lat}, {lon})")
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise ValueError(f"Coordinates out of range: ({lat}, {lon})")
    return Coordinate(lat=lat, lon=lon)


@asynccontextmanager
async def _client_scope(client: Optional[httpx.AsyncClient]) -> AsyncIterator[httpx.AsyncClient]:
    """Use the caller's client, or open one for the lifetime of this request."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=15.0, follow_redirects=True) as owned:
        yield owned


async def _environment(coord: Coordinate, client: httpx.AsyncClient) -> EnvironmentalAssessment:
    # Fail before touching the network when the weather key is missing
    weather_api_key()

    geo, weather = await asyncio.gather(
        resolve_geo_context(coord.lat, coord.lon, client),
        fetch_weather(coord.lat, coord.lon, client),
        return_exceptions=True,
    )
    if isinstance(weather, BaseException):
        raise weather
    if isinstance(geo, BaseException):
        logger.warning(f"Geo context failed unexpectedly: {geo}")
        geo = fallback_geo_context(coord.lat, coord.lon)

    env = compute_environmental_risk(weather, coord.lat, coord.lon, geo.isUrban)
    return EnvironmentalAssessment(
        locationName=geo.locationName,
        boundingBox=geo.boundingBox,
        isUrban=geo.isUrban,
        weather=weather,
        landslideProbability=env.landslideProbability,
        rawRiskIndex=env.rawRiskIndex,
        crimeWeight=env.weights.crime,
    )


async def _extract(corpus: list[str], coord: Coordinate,
                   extractor: CrimeExtractor) -> Optional[list[CrimeIncident]]:
    """Run the extraction collaborator; None means crime data is unavailable."""
    if not corpus:
        logger.info("Empty crime corpus; skipping extraction")
        return None
    try:
        incidents = await asyncio.wait_for(extractor(corpus, coord), timeout=EXTRACTION_TIMEOUT)
    except asyncio.TimeoutError:
        logger.warning("Crime extraction timed out")
        return None
    except Exception as e:
        logger.warning(f"Crime extraction failed: {e}")
        return None
    if incidents is None:
        return None
    try:
        return sanitize_incidents(list(incidents), coord)
    except Exception as e:
        logger.warning(f"Crime incidents could not be checked: {e}")
        return None


async def assess_environment(lat: float, lon: float,
                             client: Optional[httpx.AsyncClient] = None) -> EnvironmentalAssessment:
    """Environmental half of the pipeline: location, weather, landslide and raw index."""
    coord = _check_coordinates(lat, lon)
    async with _client_scope(client) as http:
        return await _environment(coord, http)


async def assess_risk(lat: float, lon: float, *,
                      client: Optional[httpx.AsyncClient] = None,
                      extractor: Optional[CrimeExtractor] = None) -> SafetyAssessment:
    """Assess how safe a point is for a traveler right now.

    Raises ConfigurationError when the weather key is missing and
    WeatherFetchError when weather cannot be fetched. Geocoding, crime search
    and extraction problems only degrade the result.
    """
    coord = _check_coordinates(lat, lon)
    extractor = extractor or extract_crime_incidents
    logger.info(f"Risk assessment request: ({coord.lat:.4f}, {coord.lon:.4f})")

    async with _client_scope(client) as http:
        env = await _environment(coord, http)
        query = "" if env.locationName == UNKNOWN_LOCATION else env.locationName
        corpus = await search_crime_news(query, http)

    incidents = await _extract(corpus, coord, extractor)

    return synthesize_assessment(
        location_name=env.locationName,
        bounding_box=env.boundingBox,
        raw_risk_index=env.rawRiskIndex,
        crime_weight=env.crimeWeight,
        incidents=incidents,
        lat=coord.lat,
        lon=coord.lon,
        landslide_prob=env.landslideProbability,
        condition=env.weather.condition,
        rainfall_mm=env.weather.rainfall_mm,
    )


def assess_risk_sync(lat: float, lon: float) -> SafetyAssessment:
    """Blocking wrapper around assess_risk for non-async callers."""
    return asyncio.run(assess_risk(lat, lon))
