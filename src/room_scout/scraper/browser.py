"""Headless browser fetcher for listing pages that render client-side."""

from typing import Any, Self

from loguru import logger
from playwright.async_api import Browser, Error, Playwright, async_playwright

from room_scout.exceptions import GetListingException


class BrowserFetcher:
    """Render pages in Chromium and return the resulting DOM as HTML.

    One browser is shared; every fetch gets its own page so concurrent
    fetches for different URLs do not interfere.
    """

    def __init__(self, timeout: float = 30.0, headless: bool = True):
        self.timeout = timeout
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    async def start(self) -> None:
        logger.info("Starting browser...")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            args=[
                "--disable-blink-features=AutomationControlled",
                "--disable-dev-shm-usage",
            ],
        )
        logger.info("Browser started successfully")

    async def stop(self) -> None:
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
        logger.info("Browser stopped")

    async def fetch(self, url: str) -> str:
        if not self._browser:
            raise RuntimeError("Browser not started. Use 'async with BrowserFetcher() as f:'.")
        logger.debug(f"Rendering: {url}")
        page = await self._browser.new_page(
            viewport={"width": 1920, "height": 1080},
            user_agent=(
                "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/124.0.0.0 Safari/537.36"
            ),
        )
        try:
            response = await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout * 1000)
            if response is not None and not response.ok:
                raise GetListingException(f"listing page {url} answered {response.status}")
            return await page.content()
        except Error as e:
            raise GetListingException(f"was not able to render listing page {url}: {e}") from e
        finally:
            await page.close()

    async def __aenter__(self) -> Self:
        await self.start()
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.stop()
