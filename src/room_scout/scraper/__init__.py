"""Listing page fetching and markup extraction."""
from typing import Any, Protocol, Self

from room_scout.config.settings import FetcherConfig
from room_scout.scraper.base import PageFetcher
from room_scout.scraper.browser import BrowserFetcher
from room_scout.scraper.extractor import ListingExtractor
from room_scout.scraper.impersonate import ImpersonatingFetcher


class Fetcher(Protocol):
    async def __aenter__(self) -> Self: ...
    async def __aexit__(self, *_: Any) -> None: ...
    async def fetch(self, url: str) -> str: ...


class FetcherClass(Protocol):
    def __call__(self, timeout: float) -> Fetcher: ...


fetchers: dict[str, FetcherClass] = {
    "http": PageFetcher,
    "impersonate": ImpersonatingFetcher,
    "browser": BrowserFetcher,
}
AVAILABLE_FETCHERS = list(fetchers.keys())


def build_fetcher(config: FetcherConfig) -> Fetcher:
    if config.mode == "browser":
        return BrowserFetcher(timeout=config.timeout, headless=config.headless)
    return fetchers[config.mode](timeout=config.timeout)


__all__ = ["AVAILABLE_FETCHERS", "Fetcher", "ListingExtractor", "build_fetcher", "fetchers"]
