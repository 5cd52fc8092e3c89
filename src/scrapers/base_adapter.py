# src/scrapers/base_adapter.py

"""Abstract base classes for the API and browser acquisition tiers."""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from typing import Any

from bs4 import BeautifulSoup, Tag
from curl_cffi import requests as curl_requests
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from src.config.settings import Settings
from src.models.errors import SourceBlockedError, SourceError
from src.models.listing import RawListing, Source
from src.scrapers.browser_session import BrowserSession

# Cloudflare / anti-bot challenge markers (checked before keyword scan)
_CHALLENGE_MARKERS: list[str] = [
    "challenges.cloudflare.com",
    "cdn-cgi/challenge-platform",
    "cf-turnstile",
    "/errors/validatecaptcha",
    "account-verification",
]


def detect_block(text: str, page_text: str | None = None) -> str | None:
    """Return the block/CAPTCHA marker found in *text*, if any.

    Challenge markers are matched against the raw markup.  CAPTCHA
    keywords are matched against *page_text* when it is given, so a
    reCAPTCHA loader script on an ordinary page is not a block.
    """
    lower = text.lower()
    for marker in _CHALLENGE_MARKERS:
        if marker in lower:
            return marker
    words = lower if page_text is None else page_text.lower()
    for keyword in Settings.CAPTCHA_KEYWORDS:
        if keyword in words:
            return keyword
    return None


def visible_text(soup: BeautifulSoup) -> str:
    """Rendered text of *soup*, without script and style contents."""
    return " ".join(
        s.strip()
        for s in soup.find_all(string=True)
        if s.parent is not None
        and s.parent.name not in ("script", "style", "noscript")
        and s.strip()
    )


class BaseAdapter(ABC):
    """One acquisition method for one source."""

    source: Source
    tier: str

    def __init__(self) -> None:
        self.settings = Settings()
        self.logger = logging.getLogger(
            f"shop_ranker.{self.source.value}.{self.tier}"
        )

    def error(self, message: str) -> SourceError:
        return SourceError(self.source.value, self.tier, message)

    def blocked(self, message: str) -> SourceBlockedError:
        return SourceBlockedError(self.source.value, self.tier, message)

    def _collect(
        self,
        records: Iterable[Any],
        parse: Callable[[Any], RawListing | None],
        limit: int,
        max_price: float | None,
    ) -> list[RawListing]:
        """Parse records, dropping unparsable and over-ceiling listings."""
        listings: list[RawListing] = []
        dropped = 0
        for record in records:
            try:
                listing = parse(record)
            except (ValueError, TypeError, KeyError, AttributeError) as exc:
                self.logger.debug("Dropped unparsable record: %s", exc)
                listing = None
            if listing is None:
                dropped += 1
                continue
            if max_price is not None and listing.price > max_price:
                continue
            listings.append(listing)
            if len(listings) >= limit:
                break
        if dropped:
            self.logger.debug(
                "[%s] %d records dropped during parsing",
                self.source.value,
                dropped,
            )
        return listings

    @abstractmethod
    async def fetch(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        """Return up to *limit* listings or raise ``SourceError``."""
        ...


class ApiAdapter(BaseAdapter):
    """Structured search endpoint reached over curl_cffi."""

    tier = "api"
    timeout: int = 15

    def __init__(self) -> None:
        super().__init__()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )

    def _get_json(
        self,
        url: str,
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """GET *url* once and decode JSON, raising ``SourceError``."""
        try:
            resp = self.session.get(
                url,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except curl_requests.RequestsError as exc:
            if "timed out" in str(exc).lower():
                raise self.error(
                    f"timeout after {self.timeout}s: {exc}"
                ) from exc
            raise self.error(f"request failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise self.error(
                f"auth failure (HTTP {resp.status_code}): "
                "key invalid, expired or revoked"
            )
        if resp.status_code != 200:
            raise self.error(f"HTTP {resp.status_code}: {resp.text[:200]}")

        text = resp.text
        if not text.lstrip().startswith(("{", "[")):
            marker = detect_block(text)
            if marker:
                raise self.blocked(f"blocked by anti-bot page ({marker})")
            raise self.error("expected JSON response, got HTML/text")
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise self.error(f"malformed JSON response: {exc}") from exc
        if not isinstance(data, dict):
            raise self.error("unexpected response structure")
        return data

    @abstractmethod
    def search(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        """Blocking search; runs in a worker thread via ``fetch``."""
        ...

    async def fetch(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        try:
            return await asyncio.to_thread(self.search, query, limit, max_price)
        finally:
            self.session.close()


class BrowserAdapter(BaseAdapter):
    """Consumer search page driven through a shared headless browser."""

    tier = "browser"

    def __init__(self, session: BrowserSession) -> None:
        super().__init__()
        self.browser = session
        self.selectors: dict[str, str] = self._load_selectors()

    def _load_selectors(self) -> dict[str, str]:
        """Load CSS selectors for this source from selectors.json."""
        with open(self.settings.SELECTORS_PATH, encoding="utf-8") as f:
            all_selectors: dict[str, Any] = json.load(f)
        result: dict[str, str] = all_selectors.get(self.source.value, {})
        return result

    @abstractmethod
    def build_url(self, query: str, max_price: float | None) -> str:
        """Return the consumer search page URL."""
        ...

    @abstractmethod
    def parse_card(self, card: Tag) -> RawListing | None:
        """Parse a single result card."""
        ...

    def _raise_if_blocked(self, html: str, soup: BeautifulSoup) -> None:
        block_sel = self.selectors.get("block", "")
        if block_sel and soup.select_one(block_sel):
            raise self.blocked(f"CAPTCHA page detected ({block_sel})")
        if soup.select_one(self.selectors["product_card"]):
            return
        empty_sel = self.selectors.get("no_results", "")
        if empty_sel and soup.select_one(empty_sel):
            return
        marker = detect_block(html, visible_text(soup))
        if marker:
            raise self.blocked(f"CAPTCHA/block page detected ({marker})")

    async def scrape(
        self,
        page: Page,
        query: str,
        limit: int,
        max_price: float | None,
    ) -> list[RawListing]:
        """Navigate, verify the page and parse result cards."""
        url = self.build_url(query, max_price)
        self.logger.info("[%s] Loading %s", self.source.value, url)
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.settings.BROWSER_NAV_TIMEOUT * 1000,
            )
        except PlaywrightTimeoutError as exc:
            raise self.error(
                f"navigation timeout after {self.settings.BROWSER_NAV_TIMEOUT}s"
            ) from exc
        except PlaywrightError as exc:
            raise self.error(f"navigation failed: {exc.message}") from exc

        card_sel = self.selectors["product_card"]
        empty_sel = self.selectors.get("no_results", "")
        wait_sel = f"{card_sel}, {empty_sel}" if empty_sel else card_sel
        try:
            await page.wait_for_selector(
                wait_sel,
                timeout=self.settings.BROWSER_SELECTOR_TIMEOUT * 1000,
            )
        except PlaywrightTimeoutError:
            html = await page.content()
            self._raise_if_blocked(html, BeautifulSoup(html, "lxml"))
            raise self.error("expected page structure not found")

        html = await page.content()
        soup = BeautifulSoup(html, "lxml")
        self._raise_if_blocked(html, soup)

        cards = soup.select(card_sel)
        if not cards:
            if empty_sel and soup.select_one(empty_sel):
                self.logger.info("[%s] Search page has no results", self.source.value)
                return []
            raise self.error("expected page structure not found")

        return self._collect(cards, self.parse_card, limit, max_price)

    async def fetch(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        async with self.browser.page() as page:
            return await self.scrape(page, query, limit, max_price)

    @staticmethod
    def text_of(card: Tag, selector: str) -> str:
        """Stripped text of the first match of *selector*, or ``""``."""
        if not selector:
            return ""
        el = card.select_one(selector)
        return el.get_text(" ", strip=True) if el else ""
