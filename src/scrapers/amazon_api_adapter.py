# src/scrapers/amazon_api_adapter.py

"""Amazon Brazil search through the Real-Time Amazon Data RapidAPI."""

from typing import Any

from src.filters.normalizer import Normalizer
from src.models.listing import LogisticsTier, RawListing, Source
from src.scrapers.base_adapter import ApiAdapter


class AmazonApiAdapter(ApiAdapter):
    """Amazon API tier.

    Prime offers ship free and are fulfilled by Amazon itself, which is
    the only delivery signal this endpoint exposes.
    """

    source = Source.AMAZON
    SEARCH_URL = "https://{host}/search"

    def __init__(self, rapidapi_key: str | None = None) -> None:
        super().__init__()
        self.timeout = self.settings.AMAZON_API_TIMEOUT
        self.rapidapi_key = (
            self.settings.RAPIDAPI_KEY if rapidapi_key is None else rapidapi_key
        )

    @staticmethod
    def _parse_product(product: dict[str, Any]) -> RawListing | None:
        title = str(product.get("product_title") or "")
        price = Normalizer.parse_price(product.get("product_price"))
        if not title or price is None:
            return None

        prime = bool(product.get("is_prime"))
        return RawListing(
            source=Source.AMAZON,
            title=title,
            price=price,
            rating=Normalizer.parse_rating(
                product.get("product_star_rating") or None
            ),
            review_count=Normalizer.parse_review_count(
                product.get("product_num_ratings") or None
            ),
            free_shipping=prime
            or Normalizer.is_free_shipping(product.get("delivery")),
            seller_name="Amazon.com.br" if prime else "Vendedor Amazon",
            permalink=str(product.get("product_url") or ""),
            logistics=(
                LogisticsTier.FULFILLMENT if prime else LogisticsTier.UNKNOWN
            ),
        )

    def search(
        self,
        query: str,
        limit: int,
        max_price: float | None = None,
    ) -> list[RawListing]:
        """Search Amazon.com.br for listings matching *query*."""
        if not self.rapidapi_key:
            raise self.error("auth failure: RAPIDAPI_KEY not configured")

        host = self.settings.AMAZON_RAPIDAPI_HOST
        params = {
            "query": query,
            "country": "BR",
            "sort_by": "RELEVANCE",
            "page": "1",
        }
        if max_price is not None:
            params["max_price"] = f"{max_price:g}"

        data = self._get_json(
            self.SEARCH_URL.format(host=host),
            headers={
                "X-RapidAPI-Key": self.rapidapi_key,
                "X-RapidAPI-Host": host,
            },
            params=params,
        )
        products: list[dict[str, Any]] = (data.get("data") or {}).get(
            "products"
        ) or []
        listings = self._collect(products, self._parse_product, limit, max_price)
        self.logger.info("[amazon] API returned %d listings", len(listings))
        return listings
