import asyncio
from typing import Any, Protocol

from loguru import logger

from room_scout.exceptions import EnrichmentError
from room_scout.schema import Coordinates, Destination, TransportMetrics, TravelEstimate, TravelMode


class MapsBackend(Protocol):
    async def geocode(self, address: str) -> Coordinates | None: ...
    async def travel(self, origin: str, destination: str, mode: TravelMode) -> TravelEstimate | None: ...


class TransportEnricher:
    """Geocode an address and estimate travel times from it to a fixed destination."""

    def __init__(self, maps: MapsBackend, destination: Destination) -> None:
        self._maps = maps
        self.destination = destination

    async def enrich(self, address: str) -> TransportMetrics:
        """Run one geocode and one travel lookup per mode, concurrently.

        Every lookup is independent: a failed or empty lookup leaves its
        fields null and never raises, so an all-failed run still returns
        TransportMetrics.empty().
        """
        modes = list(TravelMode)
        geocoded, *routes = await asyncio.gather(
            self._maps.geocode(address),
            *(self._maps.travel(address, self.destination.address, mode) for mode in modes),
            return_exceptions=True,
        )

        metrics = TransportMetrics.empty()
        if isinstance(geocoded, Coordinates):
            metrics.latitude = geocoded.lat
            metrics.longitude = geocoded.lng
        else:
            self._log_miss("geocode", address, geocoded)

        for mode, route in zip(modes, routes, strict=True):
            if isinstance(route, TravelEstimate):
                metrics.set_travel(mode, route)
            else:
                self._log_miss(f"{mode} route", address, route)

        logger.info(
            f"Transport for '{address}': walking={metrics.walking_time} "
            f"transit={metrics.transit_time} cycling={metrics.cycling_time}"
        )
        return metrics

    @staticmethod
    def _log_miss(what: str, address: str, outcome: Any) -> None:
        if outcome is None:
            logger.warning(f"No {what} result for {address}")
        elif isinstance(outcome, EnrichmentError):
            logger.error(f"{what} failed for {address}: {outcome}")
        elif isinstance(outcome, BaseException):
            logger.opt(exception=outcome).error(f"{what} failed unexpectedly for {address}")

    async def check_connectivity(self, address: str) -> dict[str, Any]:
        """Geocode *address* and route it on foot to the destination, reporting what happened."""
        result: dict[str, Any] = {"address": address}
        try:
            coordinates = await self._maps.geocode(address)
            result["geocoding"] = {
                "success": coordinates is not None,
                "coordinates": coordinates.model_dump() if coordinates else None,
            }
        except EnrichmentError as e:
            result["geocoding"] = {"success": False, "error": str(e)}

        try:
            route = await self._maps.travel(address, self.destination.address, TravelMode.walking)
            result["distance_matrix"] = {
                "success": route is not None,
                "route": route.model_dump() if route else None,
            }
        except EnrichmentError as e:
            result["distance_matrix"] = {"success": False, "error": str(e)}

        result["success"] = result["geocoding"]["success"] and result["distance_matrix"]["success"]
        return result
