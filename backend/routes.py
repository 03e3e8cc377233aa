"""Suraksha Backend — FastAPI Routes"""

import logging

import httpx
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from assessment import assess_risk, assess_environment
from data_fetchers import search_crime_news
from errors import ConfigurationError, WeatherFetchError
from models import AssessRequest, SafetyAssessment, EnvironmentalAssessment, CrimeNewsResponse

logger = logging.getLogger("suraksha")


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="Suraksha Safety API", version="1.0.0")

_allowed_origins = [
    f"http://localhost:{p}" for p in range(3000, 3010)
] + [
    f"http://127.0.0.1:{p}" for p in range(3000, 3010)
] + [
    f"http://localhost:{p}" for p in range(9002, 9004)
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _raise_for_pipeline_error(e: Exception):
    if isinstance(e, ConfigurationError):
        logger.error(f"Assessment unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    if isinstance(e, WeatherFetchError):
        logger.error(f"Weather provider failure: {e}")
        raise HTTPException(status_code=502, detail="Weather data is currently unavailable")
    raise e


# ─────────────────────────── Assessment Endpoints ───────────────

@app.post("/api/assess", response_model=SafetyAssessment)
async def assess(req: AssessRequest):
    try:
        return await assess_risk(req.lat, req.lon)
    except (ConfigurationError, WeatherFetchError) as e:
        _raise_for_pipeline_error(e)


@app.get("/api/environment", response_model=EnvironmentalAssessment)
async def environment(lat: float = Query(..., ge=-90, le=90), lon: float = Query(..., ge=-180, le=180)):
    try:
        return await assess_environment(lat, lon)
    except (ConfigurationError, WeatherFetchError) as e:
        _raise_for_pipeline_error(e)


@app.get("/api/crime-news", response_model=CrimeNewsResponse)
async def crime_news(query: str = ""):
    async with httpx.AsyncClient(timeout=15.0, follow_redirects=True) as client:
        results = await search_crime_news(query, client)
    return CrimeNewsResponse(searchResults=results)


# ─────────────────────────── Utility Endpoints ──────────────────

@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}
