# src/scrapers/ml_api_adapter.py

"""Mercado Livre (Brazil) structured search.

Two endpoint variants sit behind the same adapter.  The official
``/sites/MLB/search`` API is used whenever OAuth client credentials are
configured, since only it exposes logistics type, power-seller status
and official-store flags.  Otherwise the RapidAPI listing endpoint is
queried and its display strings go through the Normalizer.
"""

from typing import Any

from src.filters.normalizer import Normalizer
from src.models.errors import TokenRefreshError
from src.models.listing import (
    Condition,
    LogisticsTier,
    RawListing,
    SellerTier,
    Source,
)
from src.scrapers.base_adapter import ApiAdapter
from src.services.token_provider import MercadoLivreTokenProvider

_POWER_SELLER_TIERS: dict[str, SellerTier] = {
    "platinum": SellerTier.PLATINUM,
    "gold": SellerTier.GOLD,
    "silver": SellerTier.SILVER,
}

_LOGISTICS: dict[str, LogisticsTier] = {
    "fulfillment": LogisticsTier.FULFILLMENT,
    "xd_drop_off": LogisticsTier.DROP_OFF,
    "cross_docking": LogisticsTier.CROSS_DOCKING,
}


class MercadoLivreApiAdapter(ApiAdapter):
    """Mercado Livre API tier (official API or RapidAPI)."""

    source = Source.ML
    RAPIDAPI_URL = "https://{host}/listings_for_search"

    def __init__(
        self,
        token_provider: MercadoLivreTokenProvider | None = None,
        rapidapi_key: str | None = None,
    ) -> None:
        super().__init__()
        self.timeout = self.settings.ML_API_TIMEOUT
        self.token_provider = token_provider or MercadoLivreTokenProvider(
            session=self.session
        )
        self.rapidapi_key = (
            self.settings.RAPIDAPI_KEY if rapidapi_key is None else rapidapi_key
        )

    @property
    def variant(self) -> str:
        """``official`` when OAuth is configured, else ``rapidapi``."""
        return "official" if self.token_provider.configured else "rapidapi"

    # ── Official API ────────────────────────────────────

    @staticmethod
    def _seller_tier(item: dict[str, Any]) -> SellerTier:
        if item.get("official_store_id"):
            return SellerTier.OFFICIAL_STORE
        seller: dict[str, Any] = item.get("seller") or {}
        reputation: dict[str, Any] = seller.get("reputation") or {}
        status = seller.get("power_seller_status") or reputation.get(
            "power_seller_status"
        )
        return _POWER_SELLER_TIERS.get(str(status or ""), SellerTier.REGULAR)

    def _parse_official(self, item: dict[str, Any]) -> RawListing | None:
        price = Normalizer.parse_price(item.get("price"))
        if price is None:
            return None
        shipping: dict[str, Any] = item.get("shipping") or {}
        reviews: dict[str, Any] = item.get("reviews") or {}
        seller: dict[str, Any] = item.get("seller") or {}
        return RawListing(
            source=Source.ML,
            title=str(item.get("title") or ""),
            price=price,
            rating=Normalizer.parse_rating(reviews.get("rating_average")),
            review_count=Normalizer.parse_review_count(reviews.get("total")),
            free_shipping=bool(shipping.get("free_shipping")),
            seller_name=str(
                item.get("official_store_name")
                or seller.get("nickname")
                or "Vendedor ML"
            ),
            seller_tier=self._seller_tier(item),
            permalink=str(item.get("permalink") or ""),
            condition=(
                Condition.USED
                if item.get("condition") == "used"
                else Condition.NEW
            ),
            logistics=_LOGISTICS.get(
                str(shipping.get("logistic_type") or ""),
                LogisticsTier.UNKNOWN,
            ),
            currency=str(item.get("currency_id") or "BRL"),
        )

    def _search_official(
        self,
        query: str,
        limit: int,
        max_price: float | None,
    ) -> list[RawListing]:
        try:
            token = self.token_provider.get_access_token()
        except TokenRefreshError as exc:
            raise self.error(exc.message) from exc

        params = {"q": query, "limit": str(limit)}
        if max_price is not None:
            params["price"] = f"*-{max_price:g}"
        data = self._get_json(
            self.settings.ML_SEARCH_URL,
            headers={
                "User-Agent": self.settings.USER_AGENT,
                "Accept": "application/json",
                "Authorization": f"Bearer {token}",
            },
            params=params,
        )
        results: list[dict[str, Any]] = data.get("results") or []
        return self._collect(results, self._parse_official, limit, max_price)

    # ── RapidAPI ────────────────────────────────────────

    @staticmethod
    def _parse_rapidapi(item: dict[str, Any]) -> RawListing | None:
        title = str(item.get("title") or "")
        price = Normalizer.parse_price(item.get("price"))
        if not title or price is None:
            return None
        url = str(item.get("url") or "")
        used = "recondicionado" in url or "recondicionado" in title.lower()
        return RawListing(
            source=Source.ML,
            title=title,
            price=price,
            rating=Normalizer.parse_rating(item.get("rating") or None),
            review_count=Normalizer.parse_review_count(item.get("votes") or None),
            free_shipping=Normalizer.is_free_shipping(item.get("shipping")),
            seller_name=str(item.get("seller") or "").strip() or "Vendedor ML",
            permalink=url,
            condition=Condition.USED if used else Condition.NEW,
        )

    def _search_rapidapi(
        self,
        query: str,
        limit: int,
        max_price: float | None,
    ) -> list[RawListing]:
        if not self.rapidapi_key:
            raise self.error("auth failure: RAPIDAPI_KEY not configured")

        host = self.settings.ML_RAPIDAPI_HOST
        data = self._get_json(
            self.RAPIDAPI_URL.format(host=host),
            headers={
                "X-RapidAPI-Key": self.rapidapi_key,
                "X-RapidAPI-Host": host,
                "Accept": "application/json",
            },
            params={
                "search_str": query,
                "country": "br",
                "sort_by": "relevance",
                "page_num": "1",
            },
        )
        items: list[dict[str, Any]] = data.get("data") or []
        return self._collect(items, self._parse_rapidapi, limit, max_price)

    def search(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        """Search Mercado Livre through the configured API variant."""
        variant = self.variant
        self.logger.info("[ml] API search via %s endpoint", variant)
        if variant == "official":
            listings = self._search_official(query, limit, max_price)
        else:
            listings = self._search_rapidapi(query, limit, max_price)
        self.logger.info("[ml] API returned %d listings", len(listings))
        return listings
