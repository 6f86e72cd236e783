"""Fetcher for listing sites behind bot protection.

Uses curl_cffi to present a real browser TLS fingerprint; no browser required.
"""
from typing import Any, Self

from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import RequestException
from loguru import logger

from room_scout.exceptions import GetListingException

_IMPERSONATE = "chrome120"


class ImpersonatingFetcher:

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> Self:
        self._session = AsyncSession(impersonate=_IMPERSONATE)
        return self

    async def __aexit__(self, *_: Any) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> str:
        if not self._session:
            raise RuntimeError("Use 'async with ImpersonatingFetcher() as f:' context manager.")
        logger.debug(f"Fetching {url} (impersonating {_IMPERSONATE})")
        try:
            resp = await self._session.get(
                url,
                headers={"Accept-Language": "de-CH,de;q=0.9,en;q=0.8"},
                timeout=self._timeout,
            )
            resp.raise_for_status()
        except RequestException as e:
            raise GetListingException(f"was not able to fetch listing page {url}: {e}") from e
        return resp.text
