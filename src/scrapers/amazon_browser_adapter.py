# src/scrapers/amazon_browser_adapter.py

"""Scraper for amazon.com.br search pages through the shared browser."""

import urllib.parse

from bs4 import Tag

from src.filters.normalizer import Normalizer
from src.models.listing import LogisticsTier, RawListing, Source
from src.scrapers.base_adapter import BrowserAdapter


class AmazonBrowserAdapter(BrowserAdapter):
    """Amazon browser tier."""

    source = Source.AMAZON
    HOMEPAGE = "https://www.amazon.com.br"

    def build_url(self, query: str, max_price: float | None) -> str:
        # Amazon has no stable price-range URL parameter; the ceiling is
        # applied after parsing.
        return self.settings.AMAZON_SEARCH_URL.format(
            query=urllib.parse.quote_plus(query)
        )

    def parse_card(self, card: Tag) -> RawListing | None:
        """Parse a single search result card into a RawListing."""
        title = self.text_of(card, self.selectors["title"])
        price = Normalizer.parse_price(
            self.text_of(card, self.selectors["price"]) or None
        )
        if not title or price is None:
            return None

        link = card.select_one(self.selectors["url"])
        href = str(link.get("href", "")) if link else ""
        if href and not href.startswith("http"):
            href = urllib.parse.urljoin(self.HOMEPAGE, href)

        prime = card.select_one(self.selectors["prime"]) is not None
        delivery = self.text_of(card, self.selectors["delivery"])

        return RawListing(
            source=Source.AMAZON,
            title=title,
            price=price,
            rating=Normalizer.parse_rating(
                self.text_of(card, self.selectors["rating"]) or None
            ),
            review_count=Normalizer.parse_review_count(
                self.text_of(card, self.selectors["reviews"]) or None
            ),
            free_shipping=prime or Normalizer.is_free_shipping(delivery),
            seller_name="Amazon.com.br" if prime else "Vendedor Amazon",
            permalink=href,
            logistics=(
                LogisticsTier.FULFILLMENT if prime else LogisticsTier.UNKNOWN
            ),
        )
