# src/scrapers/ml_browser_adapter.py

"""Scraper for lista.mercadolivre.com.br through the shared browser."""

import urllib.parse

from bs4 import Tag

from src.filters.normalizer import Normalizer
from src.models.listing import (
    Condition,
    LogisticsTier,
    RawListing,
    SellerTier,
    Source,
)
from src.scrapers.base_adapter import BrowserAdapter


class MercadoLivreBrowserAdapter(BrowserAdapter):
    """Mercado Livre browser tier.

    The consumer listing page exposes the FULL badge (platform
    fulfillment) and official-store sellers, but not power-seller
    medals, so other sellers are classed as regular.
    """

    source = Source.ML

    def build_url(self, query: str, max_price: float | None) -> str:
        slug = urllib.parse.quote("-".join(query.split()).lower())
        if max_price is not None:
            slug += f"_PriceRange_0-{int(max_price)}"
        return self.settings.ML_LISTING_URL.format(slug=slug)

    def _parse_price(self, card: Tag) -> float | None:
        fraction = self.text_of(card, self.selectors["price_fraction"])
        if not fraction:
            return None
        cents = self.text_of(card, self.selectors.get("price_cents", ""))
        return Normalizer.parse_price(f"{fraction},{cents}" if cents else fraction)

    def parse_card(self, card: Tag) -> RawListing | None:
        """Parse a single search result card into a RawListing."""
        title = self.text_of(card, self.selectors["title"])
        price = self._parse_price(card)
        if not title or price is None:
            return None

        link = card.select_one(self.selectors["url"])
        seller_text = self.text_of(card, self.selectors["seller"])
        official = "loja oficial" in seller_text.lower()
        seller_name = seller_text.removeprefix("Por ").strip()
        condition_text = self.text_of(card, self.selectors["condition"]).lower()
        used = "usado" in condition_text or "recondicionado" in condition_text
        full = card.select_one(self.selectors["full_badge"]) is not None

        return RawListing(
            source=Source.ML,
            title=title,
            price=price,
            rating=Normalizer.parse_rating(
                self.text_of(card, self.selectors["rating"]) or None
            ),
            review_count=Normalizer.parse_review_count(
                self.text_of(card, self.selectors["reviews"]) or None
            ),
            free_shipping=Normalizer.is_free_shipping(
                self.text_of(card, self.selectors["shipping"])
            ),
            seller_name=seller_name or "Vendedor ML",
            seller_tier=(
                SellerTier.OFFICIAL_STORE if official else SellerTier.REGULAR
            ),
            permalink=str(link.get("href", "")) if link else "",
            condition=Condition.USED if used else Condition.NEW,
            logistics=(
                LogisticsTier.FULFILLMENT if full else LogisticsTier.UNKNOWN
            ),
        )
