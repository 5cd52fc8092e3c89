# src/filters/delivery_estimator.py

"""Map logistics and seller reputation to a delivery-time bucket."""

from src.models.listing import DeliveryEstimate, LogisticsTier, SellerTier

_REPUTABLE: frozenset[SellerTier] = frozenset(
    {SellerTier.OFFICIAL_STORE, SellerTier.PLATINUM, SellerTier.GOLD}
)


class DeliveryEstimator:
    """Pure delivery-time heuristic.

    A non-confident estimate is a signal consumed by the filter cascade,
    not a fallback to be hidden from callers.
    """

    FAST = DeliveryEstimate("≤3 days", True)
    UNCERTAIN = DeliveryEstimate("uncertain", False)
    CHECK_SELLER = DeliveryEstimate("check with seller", False)

    @staticmethod
    def estimate(
        logistics: LogisticsTier,
        seller_tier: SellerTier,
    ) -> DeliveryEstimate:
        """Return the delivery bucket for a logistics/seller pair."""
        if logistics is LogisticsTier.FULFILLMENT:
            return DeliveryEstimator.FAST

        reputable = seller_tier in _REPUTABLE
        if logistics is LogisticsTier.DROP_OFF:
            return DeliveryEstimate("≤5 days" if reputable else "≤7 days", True)
        if logistics is LogisticsTier.CROSS_DOCKING:
            return DeliveryEstimate("≤7 days" if reputable else "≤12 days", True)

        if seller_tier is SellerTier.REGULAR:
            return DeliveryEstimator.UNCERTAIN
        return DeliveryEstimator.CHECK_SELLER
