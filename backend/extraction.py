"""Suraksha Backend — Crime incident extraction (Gemini) and contract checks.

The extractor turns the crime-search corpus into geocoded CrimeIncident
objects. Whatever produces them, incidents pass through
``sanitize_incidents`` before they reach scoring.
"""

import json
import math
import asyncio
import hashlib
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlparse

from pydantic import ValidationError

from config import GEMINI_API_KEY, GEMINI_MODEL, EXTRACTION_TIMEOUT, MAX_INCIDENT_DISTANCE_KM
from models import Coordinate, CrimeIncident

logger = logging.getLogger("suraksha.extraction")

# (corpus, context coordinate) -> incidents, or None when extraction is unavailable
CrimeExtractor = Callable[[list[str], Coordinate], Awaitable[Optional[list[CrimeIncident]]]]


def _haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    R = 6371.0
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2
         + math.cos(math.radians(lat1))
         * math.cos(math.radians(lat2))
         * math.sin(dlon / 2) ** 2)
    a = max(0.0, min(1.0, a))
    return R * 2 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))


def _is_http_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _incident_id(source_url: str, summary: str) -> str:
    return "crime-" + hashlib.sha1(f"{source_url}\n{summary}".encode("utf-8")).hexdigest()[:12]


def sanitize_incidents(items: list[Any], context: Coordinate,
                       max_distance_km: float = MAX_INCIDENT_DISTANCE_KM) -> list[CrimeIncident]:
    """Keep only incidents that honour the extraction contract.

    Drops entries that fail validation, have non-finite or out-of-range
    coordinates, or sit further than ``max_distance_km`` from the context.
    Blanks source URLs that are not absolute http(s) links and fills in a
    stable id where one is missing.
    """
    kept: list[CrimeIncident] = []
    seen_ids: set[str] = set()
    for item in items:
        try:
            incident = item if isinstance(item, CrimeIncident) else CrimeIncident.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Dropping malformed crime incident: {e.error_count()} validation error(s)")
            continue

        if not (math.isfinite(incident.lat) and math.isfinite(incident.lon)
                and -90 <= incident.lat <= 90 and -180 <= incident.lon <= 180):
            logger.warning(f"Dropping crime incident with invalid coordinates ({incident.lat}, {incident.lon})")
            continue
        dist = _haversine_km(context.lat, context.lon, incident.lat, incident.lon)
        if dist > max_distance_km:
            logger.warning(f"Dropping crime incident {dist:.0f} km from the assessed location")
            continue

        updates: dict[str, str] = {}
        if incident.source_url and not _is_http_url(incident.source_url):
            updates["source_url"] = ""
        if not incident.id:
            updates["id"] = _incident_id(updates.get("source_url", incident.source_url), incident.summary)
        if updates:
            incident = incident.model_copy(update=updates)

        if incident.id in seen_ids:
            continue
        seen_ids.add(incident.id)
        kept.append(incident)
    return kept


def _build_prompt(corpus: list[str], context: Coordinate) -> str:
    snippets = "\n".join(f"{i + 1}. {text}" for i, text in enumerate(corpus))
    return f"""You are a public safety analyst. Below are news search snippets about crime near the location (lat {context.lat:.4f}, lon {context.lon:.4f}).

Snippets:
{snippets}

For each snippet that describes a specific crime incident in this area, extract one incident. Be critical: skip generic, historical or unrelated text. Geocode an approximate latitude/longitude for each incident from its description; it must lie near the given location.
Only set source_url if the URL appears in the snippet text, otherwise use an empty string.

Return ONLY valid JSON (no markdown):
{{"incidents": [{{"lat": <float>, "lon": <float>, "crime_type": "theft|assault|...", "severity": "low|medium|high", "summary": "1-sentence summary", "source_url": "", "time_estimate": "e.g. 2 days ago"}}]}}
Return {{"incidents": []}} if no snippet describes a relevant incident."""


def _parse_incident_payload(text: str) -> list[Any]:
    start_idx = text.find('{')
    end_idx = text.rfind('}')
    if start_idx != -1 and end_idx != -1:
        text = text[start_idx:end_idx + 1]
    parsed = json.loads(text)
    incidents = parsed.get("incidents", []) if isinstance(parsed, dict) else []
    return incidents if isinstance(incidents, list) else []


async def extract_crime_incidents(corpus: list[str], context: Coordinate) -> Optional[list[CrimeIncident]]:
    """Use Gemini to turn search snippets into geocoded crime incidents.

    Returns None (crime data unavailable) when Gemini is not configured,
    times out or answers with something unparseable.
    """
    if not GEMINI_API_KEY:
        logger.info("Gemini not configured; crime extraction unavailable")
        return None
    if not corpus:
        return []

    try:
        import google.generativeai as genai
        genai.configure(api_key=GEMINI_API_KEY)
        model = genai.GenerativeModel(GEMINI_MODEL)

        result = await asyncio.wait_for(
            model.generate_content_async(
                _build_prompt(corpus, context),
                generation_config=genai.types.GenerationConfig(
                    response_mime_type="application/json",
                    temperature=0.2,
                ),
            ),
            timeout=EXTRACTION_TIMEOUT,
        )
        raw_items = _parse_incident_payload(result.text.strip())
    except asyncio.TimeoutError:
        logger.warning(f"Gemini crime extraction timed out after {EXTRACTION_TIMEOUT:.0f}s")
        return None
    except Exception as e:
        logger.warning(f"Gemini crime extraction failed: {e}")
        return None

    incidents = sanitize_incidents(raw_items, context)
    logger.info(f"Gemini extraction: {len(incidents)}/{len(raw_items)} incidents kept")
    return incidents
