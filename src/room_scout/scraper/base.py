"""Plain HTTP page fetcher."""
from types import MappingProxyType
from typing import Any, Self

import httpx
from loguru import logger

from room_scout.exceptions import GetListingException


class PageFetcher:
    """Fetch listing pages over HTTP with browser-like headers."""

    HEADERS: MappingProxyType[str, str] = MappingProxyType({
        "User-Agent": (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/124.0.0.0 Safari/537.36"
        ),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "de-CH,de;q=0.9,en;q=0.8",
        "Accept-Encoding": "gzip, deflate",
    })

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            headers=self.HEADERS,
            follow_redirects=True,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, *_: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> str:
        """GET a listing page and return its markup.
        Raises:
            RuntimeError if not used as context manager
            GetListingException
        """
        if not self._client:
            raise RuntimeError("Use 'async with PageFetcher() as f:' context manager.")
        logger.debug(f"Fetching {url}")
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise GetListingException(f"was not able to fetch listing page {url}: {e}") from e
        return resp.text
