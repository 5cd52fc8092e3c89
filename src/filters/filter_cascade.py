# src/filters/filter_cascade.py

"""Ordered hard filters plus the progressively relaxed rating floor."""

import logging
from dataclasses import dataclass

from src.config.settings import Settings
from src.filters.delivery_estimator import DeliveryEstimator
from src.models.listing import RawListing, SellerTier
from src.models.search import SearchOptions

logger = logging.getLogger("shop_ranker.filters")


@dataclass
class CascadeResult:
    """Surviving pool and how the rating stage resolved."""

    listings: list[RawListing]
    effective_min_rating: float | None = None


class FilterCascade:
    """Apply the filter stages in order, skipping unrequested ones."""

    @staticmethod
    def prefer_confident_delivery(
        listings: list[RawListing],
    ) -> list[RawListing]:
        """Keep confident-delivery listings if enough of them exist."""
        confident = [
            item
            for item in listings
            if DeliveryEstimator.estimate(
                item.logistics, item.seller_tier
            ).confident
        ]
        if len(confident) >= Settings.MIN_POOL_SIZE:
            return confident
        return listings

    @staticmethod
    def apply_rating_floor(
        listings: list[RawListing],
        min_rating: float,
    ) -> tuple[list[RawListing], float | None]:
        """Apply the rating floor, relaxing it when too few survive.

        Unknown ratings always pass.  Returns the kept listings and the
        floor actually applied (``None`` when the stage was skipped).
        """

        def meets(floor: float) -> list[RawListing]:
            return [
                item
                for item in listings
                if item.rating is None or item.rating >= floor
            ]

        kept = meets(min_rating)
        if len(kept) >= Settings.MIN_POOL_SIZE:
            return kept, min_rating

        # Relaxation never tightens a floor requested below the fallback
        fallback = min(Settings.FALLBACK_MIN_RATING, min_rating)
        kept = meets(fallback)
        if kept and fallback == min_rating:
            return kept, min_rating
        if kept:
            logger.info(
                "Rating floor %.1f left too few listings, relaxed to %.1f",
                min_rating,
                fallback,
            )
            return kept, fallback

        logger.info("Rating floor skipped, nothing meets %.1f", fallback)
        return listings, None

    @staticmethod
    def apply(
        listings: list[RawListing],
        options: SearchOptions,
    ) -> CascadeResult:
        """Run every requested stage over *listings*."""
        result = CascadeResult(listings=list(listings))

        def stage(name: str, kept: list[RawListing]) -> None:
            dropped = len(result.listings) - len(kept)
            if dropped:
                logger.debug("Stage %s dropped %d listings", name, dropped)
            result.listings = kept

        if options.prefer_confident_delivery:
            stage(
                "delivery",
                FilterCascade.prefer_confident_delivery(result.listings),
            )
        if options.max_price is not None:
            ceiling = options.max_price
            stage(
                "max_price",
                [i for i in result.listings if i.price <= ceiling],
            )
        if options.free_shipping:
            stage(
                "free_shipping",
                [i for i in result.listings if i.free_shipping],
            )
        if options.official_store:
            stage(
                "official_store",
                [
                    i
                    for i in result.listings
                    if i.seller_tier is SellerTier.OFFICIAL_STORE
                ],
            )

        kept, result.effective_min_rating = FilterCascade.apply_rating_floor(
            result.listings, options.min_rating
        )
        stage("min_rating", kept)

        logger.info(
            "Filter cascade kept %d of %d listings",
            len(result.listings),
            len(listings),
        )
        return result
