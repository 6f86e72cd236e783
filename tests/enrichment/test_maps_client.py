from typing import Any

import httpx
import pytest

from room_scout.enrichment.maps_client import GoogleMapsClient
from room_scout.exceptions import EnrichmentError
from room_scout.schema import Coordinates, TravelEstimate, TravelMode

GEOCODE_OK = {
    "status": "OK",
    "results": [{"geometry": {"location": {"lat": 47.3769, "lng": 8.5417}}}],
}

MATRIX_OK = {
    "status": "OK",
    "rows": [{"elements": [{
        "status": "OK",
        "duration": {"text": "23 mins", "value": 1380},
        "distance": {"text": "1.8 km", "value": 1800},
    }]}],
}


def _client(payload: dict[str, Any] | None = None, status: int = 200, seen: list | None = None, **kwargs):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=payload or {})
    return GoogleMapsClient(api_key=kwargs.pop("api_key", "test-key"), transport=httpx.MockTransport(handler), **kwargs)


# ── Geocoding ──────────────────────────────────────────────────────────────────

async def test_geocode_returns_first_result():
    async with _client(GEOCODE_OK) as maps:
        assert await maps.geocode("Bahnhofstrasse 1, 8001 Zürich") == Coordinates(lat=47.3769, lng=8.5417)


async def test_geocode_zero_results_is_none():
    async with _client({"status": "ZERO_RESULTS", "results": []}) as maps:
        assert await maps.geocode("Nirgendwo 0") is None


async def test_geocode_sends_key_and_address():
    seen: list[httpx.Request] = []
    async with _client(GEOCODE_OK, seen=seen, language="en") as maps:
        await maps.geocode("Bahnhofstrasse 1, 8001 Zürich")
    params = seen[0].url.params
    assert seen[0].url.path.endswith("/geocode/json")
    assert params["address"] == "Bahnhofstrasse 1, 8001 Zürich"
    assert params["key"] == "test-key"
    assert params["language"] == "en"


@pytest.mark.parametrize("payload", [
    {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."},
    {"status": "OVER_QUERY_LIMIT"},
    {},
])
async def test_geocode_api_error_raises(payload):
    async with _client(payload) as maps:
        with pytest.raises(EnrichmentError):
            await maps.geocode("Bahnhofstrasse 1")


async def test_http_error_raises():
    async with _client(GEOCODE_OK, status=500) as maps:
        with pytest.raises(EnrichmentError):
            await maps.geocode("Bahnhofstrasse 1")


async def test_missing_key_raises_without_request():
    seen: list[httpx.Request] = []
    async with _client(GEOCODE_OK, seen=seen, api_key="") as maps:
        assert not maps.configured
        with pytest.raises(EnrichmentError):
            await maps.geocode("Bahnhofstrasse 1")
    assert seen == []


async def test_outside_context_manager():
    with pytest.raises(RuntimeError):
        await GoogleMapsClient(api_key="test-key").geocode("Bahnhofstrasse 1")


# ── Distance matrix ────────────────────────────────────────────────────────────

async def test_travel_parses_element():
    async with _client(MATRIX_OK) as maps:
        estimate = await maps.travel("Musterstrasse 5, 8001 Zürich", "Rämistrasse 101", TravelMode.walking)
    assert estimate == TravelEstimate(duration="23 mins", distance="1.8 km")


@pytest.mark.parametrize("mode,provider_mode", [
    (TravelMode.walking, "walking"),
    (TravelMode.transit, "transit"),
    (TravelMode.cycling, "bicycling"),
])
async def test_travel_mode_names(mode, provider_mode):
    seen: list[httpx.Request] = []
    async with _client(MATRIX_OK, seen=seen) as maps:
        await maps.travel("A", "B", mode)
    params = seen[0].url.params
    assert params["mode"] == provider_mode
    assert params["units"] == "metric"
    assert params["origins"] == "A"
    assert params["destinations"] == "B"


@pytest.mark.parametrize("payload", [
    {"status": "OK", "rows": [{"elements": [{"status": "NOT_FOUND"}]}]},
    {"status": "OK", "rows": [{"elements": [{"status": "ZERO_RESULTS"}]}]},
    {"status": "OK", "rows": []},
])
async def test_travel_without_route_is_none(payload):
    async with _client(payload) as maps:
        assert await maps.travel("A", "B", TravelMode.transit) is None


async def test_travel_api_error_raises():
    async with _client({"status": "INVALID_REQUEST"}) as maps:
        with pytest.raises(EnrichmentError):
            await maps.travel("A", "B", TravelMode.cycling)
