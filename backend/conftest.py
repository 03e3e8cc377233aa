import os
import sys
from typing import Callable

import httpx
import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import data_fetchers  # noqa: E402
import extraction  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_keys(monkeypatch):
    """Tests never read real credentials from the environment or .env."""
    monkeypatch.setattr(data_fetchers, "OPENWEATHERMAP_API_KEY", "test-owm-key")
    monkeypatch.setattr(extraction, "GEMINI_API_KEY", "")


@pytest.fixture
def make_client() -> Callable[[Callable], httpx.AsyncClient]:
    def _build(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _build


@pytest.fixture
def nominatim_payload() -> dict:
    return {
        "address": {
            "suburb": "Mall Road",
            "city": "Shimla",
            "state": "Himachal Pradesh",
            "country": "India",
        },
        "boundingbox": ["31.09", "31.12", "77.15", "77.19"],
        "type": "residential",
        "extratags": {"place": "town"},
    }


@pytest.fixture
def owm_payload() -> dict:
    return {
        "weather": [{"id": 501, "main": "Rain", "description": "moderate rain"}],
        "main": {"temp": 14.0, "humidity": 92},
        "wind": {"speed": 5.0},
        "rain": {"1h": 12.0},
        "visibility": 6000,
    }
