"""Suraksha Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)

# ── API Keys ──
OPENWEATHERMAP_API_KEY = os.environ.get("OPENWEATHERMAP_API_KEY", "")
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash")

# Value shipped in .env.example; treated the same as an empty key
OPENWEATHERMAP_PLACEHOLDER = "YOUR_OPENWEATHERMAP_API_KEY"

# ── Upstream endpoints ──
NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
OPENWEATHERMAP_URL = "https://api.openweathermap.org/data/2.5/weather"
DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
USER_AGENT = os.environ.get("USER_AGENT", "SurakshaSahayak/1.0 (safety@suraksha.app)")

# ── Timeouts (seconds) ──
GEO_TIMEOUT = float(os.environ.get("GEO_TIMEOUT", "10"))
WEATHER_TIMEOUT = float(os.environ.get("WEATHER_TIMEOUT", "10"))
SEARCH_TIMEOUT = float(os.environ.get("SEARCH_TIMEOUT", "8"))
EXTRACTION_TIMEOUT = float(os.environ.get("EXTRACTION_TIMEOUT", "30"))

# ── Geo context ──
UNKNOWN_LOCATION = "Unknown Location"
DEFAULT_BBOX_PAD = 0.01
URBAN_PLACE_TYPES = {"city", "town", "suburb", "urban"}

# ── Weather defaults (used when the provider omits a field) ──
WEATHER_DEFAULTS = {
    "temperature": 20.0,
    "rainfall_mm": 0.0,
    "wind_speed_ms": 0.0,
    "humidity": 80.0,
    "condition": "Clear",
    "visibility_m": 10000.0,
}
MAX_VISIBILITY_M = 10000.0

# ── Environmental scoring ──
# Conditions that force the weather sub-risk to at least SEVERE_WEATHER_FLOOR
SEVERE_CONDITIONS = {"Thunderstorm", "Tornado", "Squall"}
SEVERE_WEATHER_FLOOR = 80.0

# Coarse rectangles of known landslide-prone terrain: name, (min_lat, max_lat), (min_lon, max_lon)
LANDSLIDE_ZONES = [
    ("Himalayan Region", (26.5, 35.5), (73.0, 97.5)),
    ("Western Ghats", (8.0, 21.0), (72.8, 78.0)),
]
LANDSLIDE_ZONE_SUSCEPTIBILITY = 0.25
LANDSLIDE_BASE_SUSCEPTIBILITY = 0.02

# Weight tables by settlement type; crime share is handed on to the fusion step
URBAN_WEIGHTS = {"weather": 0.40, "slide": 0.20, "crime": 0.40}
RURAL_WEIGHTS = {"weather": 0.40, "slide": 0.35, "crime": 0.25}

# ── Crime signal search ──
CRIME_QUERY_TEMPLATES = [
    "recent crime reports {location}",
    "latest crime news in {location}",
    "murder in {location}",
    "theft in {location}",
    "assault in {location}",
    "robbery in {location}",
    "kidnapping in {location}",
    "scams targeting tourists in {location}",
    "police cases {location} past week",
]
CORPUS_LIMIT = 20

# ── Crime extraction ──
MAX_INCIDENT_DISTANCE_KM = 50.0

# ── Risk synthesis ──
CRIME_SEVERITY_WEIGHTS = {"low": 20.0, "medium": 50.0, "high": 90.0}
CRIME_EXTRA_INCIDENT_FACTOR = 10.0
# Total risk never drops below this share of the crime risk
CRIME_DOMINANCE_SHARE = 2 / 3

LANDSLIDE_HAZARD_THRESHOLD = 0.6
LANDSLIDE_HIGH_THRESHOLD = 0.8
HAZARD_WEATHER_CONDITIONS = {"Thunderstorm", "Heavy Rain", "Fog"}

# Upper bounds (inclusive) of the risk tag bands
HIGH_RISK_MAX_SCORE = 40
MODERATE_MAX_SCORE = 70
