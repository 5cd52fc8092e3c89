# src/models/listing.py

"""Listing data models for inter-module data flow."""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Source(str, Enum):
    """Marketplaces a query can be sent to."""

    ML = "ml"
    AMAZON = "amazon"


class SellerTier(str, Enum):
    """Reputation classification of the offering merchant."""

    OFFICIAL_STORE = "official_store"
    PLATINUM = "mercadolider_platinum"
    GOLD = "mercadolider_gold"
    SILVER = "mercadolider_silver"
    REGULAR = "regular"


class Condition(str, Enum):
    """Item condition."""

    NEW = "new"
    USED = "used"


class LogisticsTier(str, Enum):
    """How the order reaches the buyer."""

    FULFILLMENT = "fulfillment"
    DROP_OFF = "xd_drop_off"
    CROSS_DOCKING = "cross_docking"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RawListing:
    """A single product offer returned by one source for one query.

    Construction fails with ``ValueError`` for a blank title, a
    non-positive or non-finite price, an out-of-range rating or a
    negative review count.  Adapters drop such listings.
    """

    source: Source
    title: str
    price: float
    rating: float | None = None
    review_count: int | None = None
    free_shipping: bool = False
    seller_name: str = ""
    seller_tier: SellerTier = SellerTier.REGULAR
    permalink: str = ""
    condition: Condition = Condition.NEW
    logistics: LogisticsTier = LogisticsTier.UNKNOWN
    currency: str = "BRL"

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("listing title must be non-empty")
        if not math.isfinite(self.price) or self.price <= 0:
            raise ValueError(f"listing price must be positive: {self.price!r}")
        if self.rating is not None and not 0 <= self.rating <= 5:
            raise ValueError(f"rating out of range: {self.rating!r}")
        if self.review_count is not None and self.review_count < 0:
            raise ValueError(
                f"review count must be non-negative: {self.review_count!r}"
            )


@dataclass(frozen=True)
class DeliveryEstimate:
    """Delivery-time bucket and whether the estimate is trustworthy."""

    label: str
    confident: bool


@dataclass(frozen=True)
class ScoredListing:
    """A listing scored against its filtered candidate pool (unranked)."""

    listing: RawListing
    delivery: DeliveryEstimate
    score: float


@dataclass(frozen=True)
class RankedListing:
    """A scored listing with its final 1-based position."""

    listing: RawListing
    delivery: DeliveryEstimate
    score: float
    rank: int

    @classmethod
    def from_scored(cls, scored: ScoredListing, rank: int) -> "RankedListing":
        """Attach a rank to a scored listing."""
        if rank < 1:
            raise ValueError(f"rank must be positive: {rank}")
        return cls(
            listing=scored.listing,
            delivery=scored.delivery,
            score=scored.score,
            rank=rank,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the JSON output shape."""
        item = self.listing
        return {
            "rank": self.rank,
            "source": item.source.value,
            "title": item.title,
            "price": item.price,
            "currency": item.currency,
            "condition": item.condition.value,
            "rating": item.rating,
            "reviews_total": item.review_count,
            "free_shipping": item.free_shipping,
            "estimated_delivery": self.delivery.label,
            "estimated_delivery_ok": self.delivery.confident,
            "seller_type": item.seller_tier.value,
            "seller_name": item.seller_name,
            "permalink": item.permalink,
            "score": self.score,
        }
