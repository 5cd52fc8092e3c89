# src/filters/scoring.py

"""Weighted utility score of each listing relative to its candidate pool."""

import logging
import math

from src.config.settings import Settings
from src.filters.delivery_estimator import DeliveryEstimator
from src.models.listing import RawListing, ScoredListing, SellerTier

logger = logging.getLogger("shop_ranker.scoring")

SELLER_SCORES: dict[SellerTier, float] = {
    SellerTier.OFFICIAL_STORE: 1.0,
    SellerTier.PLATINUM: 0.9,
    SellerTier.GOLD: 0.8,
    SellerTier.SILVER: 0.6,
    SellerTier.REGULAR: 0.4,
}


class ScoringEngine:
    """Score listings on price, rating, review volume, shipping and seller.

    Scores are relative: the same listing scores differently against a
    different filtered pool.
    """

    @staticmethod
    def score(
        listing: RawListing,
        pool_min_price: float,
        pool_max_price: float,
        pool_max_reviews: int,
    ) -> float:
        """Return the listing's score in [0, 100], rounded to one decimal."""
        price_range = pool_max_price - pool_min_price
        if price_range > 0:
            price_score = 1 - (listing.price - pool_min_price) / price_range
        else:
            price_score = 1.0

        rating_score = (listing.rating or 0.0) / 5

        if pool_max_reviews > 0:
            review_score = math.log10((listing.review_count or 0) + 1) / math.log10(
                pool_max_reviews + 1
            )
        else:
            review_score = 0.0

        shipping_score = (
            1.0 if listing.free_shipping else Settings.PAID_SHIPPING_SCORE
        )
        seller_score = SELLER_SCORES[listing.seller_tier]

        total = (
            price_score * Settings.WEIGHT_PRICE
            + rating_score * Settings.WEIGHT_RATING
            + review_score * Settings.WEIGHT_REVIEWS
            + shipping_score * Settings.WEIGHT_SHIPPING
            + seller_score * Settings.WEIGHT_SELLER
        )
        return round(min(max(total * 100, 0.0), 100.0), 1)

    @staticmethod
    def score_pool(listings: list[RawListing]) -> list[ScoredListing]:
        """Score every listing against the pool they form, keeping order."""
        if not listings:
            return []

        prices = [item.price for item in listings]
        pool_min = min(prices)
        pool_max = max(prices)
        max_reviews = max(item.review_count or 0 for item in listings)
        logger.debug(
            "Scoring %d listings (price %.2f-%.2f, max reviews %d)",
            len(listings),
            pool_min,
            pool_max,
            max_reviews,
        )

        return [
            ScoredListing(
                listing=item,
                delivery=DeliveryEstimator.estimate(
                    item.logistics, item.seller_tier
                ),
                score=ScoringEngine.score(
                    item, pool_min, pool_max, max_reviews
                ),
            )
            for item in listings
        ]
