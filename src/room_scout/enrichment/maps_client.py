"""Google Maps Geocoding and Distance Matrix client."""
from typing import Any, Self

import httpx
from loguru import logger

from room_scout.exceptions import EnrichmentError
from room_scout.schema import Coordinates, TravelEstimate, TravelMode

BASE_URL = "https://maps.googleapis.com/maps/api"

# Top-level statuses that mean "the request worked".
_OK_STATUSES = frozenset({"OK", "ZERO_RESULTS"})


class GoogleMapsClient:
    """Thin async wrapper over the two Maps web services the enrichment needs.

    Returns None when the service answered but found nothing, and raises
    EnrichmentError when the call itself failed.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = BASE_URL,
        language: str = "de",
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self

    async def __aexit__(self, exc_type: Any, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _get(self, service: str, params: dict[str, str]) -> dict[str, Any]:
        """
        Raises:
            RuntimeError if not used as context manager
            EnrichmentError
        """
        if not self._client:
            raise RuntimeError("Use 'async with GoogleMapsClient() as c:' context manager.")
        if not self._api_key:
            raise EnrichmentError("Google Maps API key is not configured")

        try:
            resp = await self._client.get(
                f"{self._base_url}/{service}/json",
                params={**params, "language": self._language, "key": self._api_key},
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentError(f"{service} request failed: {e}") from e

        status = data.get("status")
        if status not in _OK_STATUSES:
            message = data.get("error_message", "")
            raise EnrichmentError(f"{service} answered {status} {message}".strip())
        return data

    async def geocode(self, address: str) -> Coordinates | None:
        logger.debug(f"Geocoding address: {address}")
        data = await self._get("geocode", {"address": address})
        results = data.get("results") or []
        if not results:
            logger.info(f"No geocoding results found for address: {address}")
            return None
        location = results[0]["geometry"]["location"]
        return Coordinates(lat=location["lat"], lng=location["lng"])

    async def travel(self, origin: str, destination: str, mode: TravelMode) -> TravelEstimate | None:
        logger.debug(f"Route {mode}: {origin} -> {destination}")
        data = await self._get(
            "distancematrix",
            {
                "origins": origin,
                "destinations": destination,
                "mode": mode.provider_mode,
                "units": "metric",
            },
        )
        try:
            element = data["rows"][0]["elements"][0]
        except (KeyError, IndexError):
            logger.info(f"No {mode} route returned for {origin}")
            return None
        if element.get("status") != "OK":
            logger.info(f"{mode} calculation failed: {element.get('status')}")
            return None
        return TravelEstimate(
            duration=(element.get("duration") or {}).get("text"),
            distance=(element.get("distance") or {}).get("text"),
        )
