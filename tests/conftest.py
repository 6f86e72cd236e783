import asyncio
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from room_scout.enrichment import TransportEnricher
from room_scout.exceptions import EnrichmentError, GetListingException
from room_scout.pipeline import JobCoordinator
from room_scout.schema import Coordinates, Destination, TravelEstimate, TravelMode
from room_scout.storage import JobStorage

FIXTURES = Path(__file__).parent / "fixtures"

DESTINATION = Destination(address="Rämistrasse 101, 8092 Zürich, Switzerland", lat=47.3766, lng=8.548)


class FakeFetcher:
    """Serves canned pages; unknown URLs get an empty document."""

    def __init__(
        self,
        pages: dict[str, str] | None = None,
        failing: set[str] | None = None,
        crashing: set[str] | None = None,
    ):
        self.pages = pages or {}
        self.failing = failing or set()
        self.crashing = crashing or set()
        self.calls: list[str] = []

    async def __aenter__(self) -> "FakeFetcher":
        return self

    async def __aexit__(self, *_: Any) -> None:
        pass

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        await asyncio.sleep(0)
        if url in self.failing:
            raise GetListingException(f"boom: {url}")
        if url in self.crashing:
            raise ValueError(f"unexpected error while fetching {url}")
        return self.pages.get(url, "<html><body></body></html>")


class FakeMaps:
    """Deterministic maps backend. Addresses in *unknown* geocode to nothing."""

    def __init__(
        self,
        fail_geocode: bool = False,
        fail_modes: set[TravelMode] | None = None,
        unknown: set[str] | None = None,
    ):
        self.fail_geocode = fail_geocode
        self.fail_modes = fail_modes or set()
        self.unknown = unknown or set()
        self.geocoded: list[str] = []
        self.routed: list[tuple[str, str, TravelMode]] = []

    async def geocode(self, address: str) -> Coordinates | None:
        self.geocoded.append(address)
        await asyncio.sleep(0)
        if self.fail_geocode:
            raise EnrichmentError("geocode answered REQUEST_DENIED")
        if address in self.unknown:
            return None
        return Coordinates(lat=47.0 + len(address) / 1000, lng=8.5)

    async def travel(self, origin: str, destination: str, mode: TravelMode) -> TravelEstimate | None:
        self.routed.append((origin, destination, mode))
        await asyncio.sleep(0)
        if mode in self.fail_modes:
            raise EnrichmentError(f"{mode} answered OVER_QUERY_LIMIT")
        if origin in self.unknown:
            return None
        minutes = {TravelMode.walking: 40, TravelMode.transit: 18, TravelMode.cycling: 12}[mode]
        return TravelEstimate(duration=f"{minutes} mins", distance="3.1 km")


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture
def list_page() -> str:
    return read_fixture("list_listing.html")


@pytest.fixture
def paragraph_page() -> str:
    return read_fixture("paragraph_listing.html")


@pytest.fixture
def marked_page() -> str:
    return read_fixture("marked_listing.html")


@pytest.fixture
def empty_page() -> str:
    return read_fixture("empty_listing.html")


@pytest.fixture
def storage(tmp_path: Path) -> JobStorage:
    return JobStorage(tmp_path)


@pytest.fixture
def fake_maps() -> FakeMaps:
    return FakeMaps()


@pytest.fixture
def fetcher(list_page: str, empty_page: str) -> FakeFetcher:
    return FakeFetcher(
        pages={
            "https://www.wgzimmer.ch/room/1": list_page,
            "https://www.wgzimmer.ch/room/gone": empty_page,
        },
        failing={"https://www.wgzimmer.ch/room/down"},
    )


@pytest.fixture
def coordinator(storage: JobStorage, fetcher: FakeFetcher, fake_maps: FakeMaps) -> JobCoordinator:
    return JobCoordinator(storage, fetcher, TransportEnricher(fake_maps, DESTINATION))


@pytest.fixture
def log_records():
    """Collect loguru messages emitted during the test."""
    records: list[Any] = []
    handler_id = logger.add(records.append, level="DEBUG", format="{level}|{message}")
    yield records
    logger.remove(handler_id)
