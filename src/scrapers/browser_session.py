# src/scrapers/browser_session.py

"""One headless Chromium per query, shared by every browser-tier source."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from types import TracebackType
from typing import AsyncIterator

from playwright.async_api import Browser, Page, Playwright, async_playwright

from src.config.settings import Settings

logger = logging.getLogger("shop_ranker.browser")


class BrowserSession:
    """Lazily launched browser whose pages are isolated per source.

    The browser process starts on the first ``page()`` request, so a
    query answered entirely by the API tier never launches Chromium.
    Each page lives in its own context (separate cookies and storage)
    and is closed when its ``async with`` block exits, however it exits.
    """

    def __init__(self) -> None:
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._launch_lock = asyncio.Lock()
        self._open_pages: int = 0

    async def __aenter__(self) -> BrowserSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    @property
    def launched(self) -> bool:
        return self._browser is not None

    @property
    def open_pages(self) -> int:
        """Number of pages currently checked out."""
        return self._open_pages

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            logger.info("Launching headless Chromium")
            self._browser = await self._playwright.chromium.launch(headless=True)
            return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Yield a fresh page in a fresh context, closing both afterwards."""
        browser = await self._ensure_browser()
        context = await browser.new_context(
            user_agent=Settings.BROWSER_USER_AGENT,
            locale=Settings.BROWSER_LOCALE,
        )
        self._open_pages += 1
        try:
            page = await context.new_page()
            yield page
        finally:
            self._open_pages -= 1
            await context.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                logger.warning("Browser close failed: %s", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
