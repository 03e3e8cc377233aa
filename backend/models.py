"""Suraksha Backend — Pydantic Models"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


CrimeSeverity = Literal["low", "medium", "high"]
HazardSeverity = Literal["medium", "high"]
RiskTag = Literal["safe", "moderate", "high risk"]


class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class AssessRequest(Coordinate):
    pass


class GeoContext(BaseModel):
    locationName: str
    boundingBox: list[float]  # [south, north, west, east]
    isUrban: bool = False


class WeatherSnapshot(BaseModel):
    temperature: float        # °C
    rainfall_mm: float        # last hour
    wind_speed_kmh: float
    humidity: float           # %
    condition: str            # OWM "main" label, e.g. "Rain", "Thunderstorm", "Fog"
    visibility_km: float


class LandslideZone(BaseModel):
    name: str
    latRange: tuple[float, float]
    lonRange: tuple[float, float]

    def contains(self, lat: float, lon: float) -> bool:
        return (self.latRange[0] <= lat <= self.latRange[1]
                and self.lonRange[0] <= lon <= self.lonRange[1])


class RiskWeights(BaseModel):
    weather: float
    slide: float
    crime: float


class EnvironmentalScore(BaseModel):
    """Output of the environmental scorer, before it is attached to a location."""
    rawRiskIndex: float = Field(..., ge=0, le=100)
    landslideProbability: float = Field(..., ge=0, le=1)
    weatherRisk: float = Field(..., ge=0, le=100)
    weights: RiskWeights


class EnvironmentalAssessment(BaseModel):
    locationName: str
    boundingBox: list[float]
    isUrban: bool = False
    weather: WeatherSnapshot
    landslideProbability: float = Field(..., ge=0, le=1)
    rawRiskIndex: float = Field(..., ge=0, le=100)
    crimeWeight: float


class SearchResult(BaseModel):
    """One text-search response, reduced to its text snippets."""
    related_topics: list[str] = []
    abstract: Optional[str] = None
    results: list[str] = []


class CrimeIncident(BaseModel):
    id: str = ""
    lat: float
    lon: float
    crime_type: str
    severity: CrimeSeverity
    summary: str = ""
    source_url: str = ""
    time_estimate: str = ""


class EnvironmentalHazard(BaseModel):
    id: str
    lat: float
    lon: float
    type: Literal["landslide", "weather"]
    title: str
    description: str
    severity: HazardSeverity


class SafetyAssessment(BaseModel):
    locationName: str
    boundingBox: list[float]
    safetyScore: int = Field(..., ge=0, le=100)
    riskTag: RiskTag
    justification: str
    crimeHotspots: list[CrimeIncident] = []
    environmentalHazards: list[EnvironmentalHazard] = []


class CrimeNewsResponse(BaseModel):
    searchResults: list[str]
