"""Suraksha Backend — Environmental Risk Scoring & Risk Synthesis"""

import math
import logging
from typing import Optional

from config import (
    SEVERE_CONDITIONS, SEVERE_WEATHER_FLOOR,
    LANDSLIDE_ZONES, LANDSLIDE_ZONE_SUSCEPTIBILITY, LANDSLIDE_BASE_SUSCEPTIBILITY,
    URBAN_WEIGHTS, RURAL_WEIGHTS,
    CRIME_SEVERITY_WEIGHTS, CRIME_EXTRA_INCIDENT_FACTOR, CRIME_DOMINANCE_SHARE,
    LANDSLIDE_HAZARD_THRESHOLD, LANDSLIDE_HIGH_THRESHOLD, HAZARD_WEATHER_CONDITIONS,
    HIGH_RISK_MAX_SCORE, MODERATE_MAX_SCORE,
)
from models import (
    WeatherSnapshot, LandslideZone, RiskWeights, EnvironmentalScore,
    CrimeIncident, EnvironmentalHazard, SafetyAssessment,
)

logger = logging.getLogger("suraksha.scoring")

LANDSLIDE_PRONE_ZONES = [
    LandslideZone(name=name, latRange=lat_range, lonRange=lon_range)
    for name, lat_range, lon_range in LANDSLIDE_ZONES
]


def sigmoid(x: float) -> float:
    """Logistic curve mapping any real to [0, 1] without overflowing."""
    if x >= 0:
        return 1 / (1 + math.exp(-x))
    e = math.exp(x)
    return e / (1 + e)


def clip(lo: float, value: float, hi: float) -> float:
    return max(lo, min(value, hi))


# ─────────────────────────── Environmental Risk ─────────────────

def weather_risk(weather: WeatherSnapshot) -> float:
    """Weather sub-risk R_weather in [0, 100].

    Each measurement goes through its own logistic curve centred on the value
    where it starts to matter for a traveler (20 mm/h rain, 35 km/h wind,
    4 km visibility, 6 °C outside the 16-32 °C comfort band).
    """
    r_rain = 100 * sigmoid(0.15 * (weather.rainfall_mm - 20))
    r_wind = 100 * sigmoid(0.15 * (weather.wind_speed_kmh - 35))
    r_vis = 100 * sigmoid(0.8 * (4 - weather.visibility_km))

    temp_dev = max(0.0, 16 - weather.temperature, weather.temperature - 32)
    r_temp = 100 * sigmoid(0.25 * (temp_dev - 6))

    r_weather = clip(0, 0.5 * r_rain + 0.3 * r_wind + 0.15 * r_vis + 0.05 * r_temp, 100)
    if weather.condition in SEVERE_CONDITIONS:
        r_weather = max(r_weather, SEVERE_WEATHER_FLOOR)
    return r_weather


def find_landslide_zone(lat: float, lon: float) -> Optional[LandslideZone]:
    for zone in LANDSLIDE_PRONE_ZONES:
        if zone.contains(lat, lon):
            return zone
    return None


def landslide_probability(rainfall_mm: float, lat: float, lon: float) -> float:
    """Base susceptibility of the terrain, amplified by up to 80% by recent rain."""
    base = LANDSLIDE_ZONE_SUSCEPTIBILITY if find_landslide_zone(lat, lon) else LANDSLIDE_BASE_SUSCEPTIBILITY
    rain_index = sigmoid(0.12 * (rainfall_mm - 15))
    return clip(0, base * (1 + 0.8 * rain_index), 1)


def risk_weights(is_urban: bool) -> RiskWeights:
    return RiskWeights(**(URBAN_WEIGHTS if is_urban else RURAL_WEIGHTS))


def compute_environmental_risk(weather: WeatherSnapshot, lat: float, lon: float,
                               is_urban: bool) -> EnvironmentalScore:
    """Combine weather and landslide sub-risks into the 0-100 raw risk index.

    Pure function: identical inputs always give identical output.
    """
    weights = risk_weights(is_urban)
    r_weather = weather_risk(weather)
    effective_prob = landslide_probability(weather.rainfall_mm, lat, lon)
    r_slide = 100 * effective_prob

    environmental_risk_index = weights.weather * (r_weather / 100) + weights.slide * (r_slide / 100)
    raw_risk_index = clip(0, environmental_risk_index / (weights.weather + weights.slide) * 100, 100)

    return EnvironmentalScore(
        rawRiskIndex=round(raw_risk_index, 2),
        landslideProbability=effective_prob,
        weatherRisk=round(r_weather, 2),
        weights=weights,
    )


# ─────────────────────────── Crime Risk & Fusion ────────────────

def compute_crime_risk(incidents: list[CrimeIncident]) -> float:
    """Severity-weighted crime risk in [0, 100].

    The most severe incident sets the base; every further incident adds a
    logarithmically shrinking amount.
    """
    if not incidents:
        return 0.0
    base = max(CRIME_SEVERITY_WEIGHTS[i.severity] for i in incidents)
    extra = len(incidents) - 1
    return clip(0, base + CRIME_EXTRA_INCIDENT_FACTOR * math.log2(1 + extra), 100)


def fuse_risk(raw_risk_index: float, crime_risk: float, crime_weight: float) -> float:
    """Total risk: weighted blend, floored so severe crime alone can dominate."""
    blended = (1 - crime_weight) * raw_risk_index + crime_weight * crime_risk
    return clip(0, max(blended, CRIME_DOMINANCE_SHARE * crime_risk), 100)


def classify_risk_from_score(safety_score: int) -> str:
    """Mapping:
      0-40   → high risk
      41-70  → moderate
      71-100 → safe
    """
    if safety_score <= HIGH_RISK_MAX_SCORE:
        return "high risk"
    elif safety_score <= MODERATE_MAX_SCORE:
        return "moderate"
    return "safe"


def derive_environmental_hazards(lat: float, lon: float, landslide_prob: float,
                                 condition: str) -> list[EnvironmentalHazard]:
    hazards = []
    if landslide_prob > LANDSLIDE_HAZARD_THRESHOLD:
        hazards.append(EnvironmentalHazard(
            id=f"landslide-{lat:.4f}-{lon:.4f}",
            lat=lat,
            lon=lon,
            type="landslide",
            title="Landslide Warning",
            description=f"Landslide probability is {landslide_prob:.0%} given terrain and recent rainfall.",
            severity="high" if landslide_prob > LANDSLIDE_HIGH_THRESHOLD else "medium",
        ))
    if condition in HAZARD_WEATHER_CONDITIONS:
        hazards.append(EnvironmentalHazard(
            id=f"weather-{lat:.4f}-{lon:.4f}",
            lat=lat,
            lon=lon,
            type="weather",
            title=f"{condition} Alert",
            description=f"{condition} reported at this location. Delay travel or take precautions.",
            severity="high" if condition == "Thunderstorm" else "medium",
        ))
    return hazards


def _environmental_trigger(landslide_prob: float, condition: str, rainfall_mm: Optional[float]) -> str:
    if condition in SEVERE_CONDITIONS or condition in HAZARD_WEATHER_CONDITIONS:
        return f"{condition.lower()} conditions"
    if landslide_prob > LANDSLIDE_HAZARD_THRESHOLD:
        return f"a {landslide_prob:.0%} landslide probability"
    if rainfall_mm is not None and rainfall_mm >= 10:
        return f"{rainfall_mm:.1f} mm of rain in the last hour"
    if landslide_prob >= 0.2:
        return f"landslide-prone terrain ({landslide_prob:.0%} probability)"
    return f"current weather ({condition.lower()})"


def build_justification(raw_risk_index: float, crime_risk: float, crime_weight: float,
                        incidents: Optional[list[CrimeIncident]], landslide_prob: float,
                        condition: str, rainfall_mm: Optional[float] = None) -> str:
    env_part = (1 - crime_weight) * raw_risk_index
    crime_part = crime_weight * crime_risk

    if incidents is None:
        crime_note = "Crime data was unavailable, so the score reflects environmental conditions only."
    elif not incidents:
        crime_note = "No recent crime reports were found."
    else:
        crime_note = f"{len(incidents)} recent crime report{'s' if len(incidents) != 1 else ''} also considered."

    if crime_part > env_part and incidents:
        worst = max(incidents, key=lambda i: CRIME_SEVERITY_WEIGHTS[i.severity])
        count = len(incidents)
        return (
            f"Recent crime is the main risk factor: {count} incident{'s' if count != 1 else ''} reported, "
            f"the most severe being {worst.severity}-severity {worst.crime_type}. "
            f"Environmental risk index is {raw_risk_index:.0f}/100."
        )

    if raw_risk_index < 20 and crime_part <= 0:
        return f"Conditions look favourable with low environmental risk ({raw_risk_index:.0f}/100). {crime_note}"

    trigger = _environmental_trigger(landslide_prob, condition, rainfall_mm)
    return (
        f"Environmental conditions are the main risk factor (index {raw_risk_index:.0f}/100), "
        f"driven by {trigger}. {crime_note}"
    )


def synthesize_assessment(
    *,
    location_name: str,
    bounding_box: list[float],
    raw_risk_index: float,
    crime_weight: float,
    incidents: Optional[list[CrimeIncident]],
    lat: float,
    lon: float,
    landslide_prob: float,
    condition: str,
    rainfall_mm: Optional[float] = None,
) -> SafetyAssessment:
    """Fuse the environmental index with extracted crime incidents.

    ``incidents=None`` means crime data could not be obtained; the score then
    rests on the environmental signal alone.
    """
    crime_risk = compute_crime_risk(incidents or [])
    total_risk = fuse_risk(raw_risk_index, crime_risk, crime_weight)
    safety_score = int(round(clip(0, 100 - total_risk, 100)))
    risk_tag = classify_risk_from_score(safety_score)

    logger.info(
        f"Synthesis: env={raw_risk_index:.2f} crime={crime_risk:.1f} (w={crime_weight}) "
        f"→ total={total_risk:.2f}, score={safety_score} ({risk_tag})"
    )

    return SafetyAssessment(
        locationName=location_name,
        boundingBox=bounding_box,
        safetyScore=safety_score,
        riskTag=risk_tag,
        justification=build_justification(
            raw_risk_index, crime_risk, crime_weight, incidents,
            landslide_prob, condition, rainfall_mm,
        ),
        crimeHotspots=incidents or [],
        environmentalHazards=derive_environmental_hazards(lat, lon, landslide_prob, condition),
    )
