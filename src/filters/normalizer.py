# src/filters/normalizer.py

"""Parse heterogeneous price, rating and review-count text into numbers."""

import logging
import math
import re

from src.config.settings import Settings

logger = logging.getLogger("shop_ranker.normalizer")


class Normalizer:
    """Best-effort numeric parsing for scraped and API-provided fields.

    The price heuristic resolves ``1.299,90`` vs ``1,299.90`` by position
    of the last separator.  It is not a guarantee for every world number
    format; implausible results are rejected rather than trusted.
    """

    _NON_PRICE_RE = re.compile(r"[^\d,.]")
    _SEPARATORS_RE = re.compile(r"[.,]")
    _NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")
    _THOUSANDS_MARKER_RE = re.compile(r"\b(mil|k)\b", re.IGNORECASE)
    _FREE_SHIPPING_WORDS: tuple[str, ...] = ("grátis", "gratis", "free")

    @staticmethod
    def parse_price(value: str | float | int | None) -> float | None:
        """Parse a price such as ``R$ 1.299,90`` or ``$1,299.90``.

        Returns ``None`` when no finite positive price within
        ``Settings.PRICE_SANITY_MAX`` can be derived.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return Normalizer._plausible_price(float(value))

        cleaned = Normalizer._NON_PRICE_RE.sub("", value)
        if not any(ch.isdigit() for ch in cleaned):
            return None

        last_comma = cleaned.rfind(",")
        last_dot = cleaned.rfind(".")
        decimal_sep: str | None = None
        if last_comma >= 0 and last_dot >= 0:
            decimal_sep = "," if last_comma > last_dot else "."
        elif last_comma >= 0 or last_dot >= 0:
            sep = "," if last_comma >= 0 else "."
            if re.search(rf"\{sep}\d{{1,2}}$", cleaned):
                decimal_sep = sep

        if decimal_sep is None:
            normalized = Normalizer._SEPARATORS_RE.sub("", cleaned)
        else:
            whole, _, fraction = cleaned.rpartition(decimal_sep)
            whole = Normalizer._SEPARATORS_RE.sub("", whole)
            normalized = f"{whole or '0'}.{fraction or '0'}"

        try:
            parsed = float(normalized)
        except ValueError:
            logger.debug("Unparsable price text %r", value)
            return None
        return Normalizer._plausible_price(parsed)

    @staticmethod
    def _plausible_price(price: float) -> float | None:
        if not math.isfinite(price) or price <= 0:
            return None
        if price > Settings.PRICE_SANITY_MAX:
            logger.debug("Rejected implausible price %.2f", price)
            return None
        return price

    @staticmethod
    def parse_rating(value: str | float | int | None) -> float | None:
        """Parse ``4,5 de 5 estrelas`` style text; ``None`` means unknown."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            rating = float(value)
        else:
            match = Normalizer._NUMBER_RE.search(value.replace(",", "."))
            if not match:
                return None
            rating = float(match.group(0))
        if not math.isfinite(rating) or not 0 <= rating <= 5:
            return None
        return rating

    @staticmethod
    def parse_review_count(value: str | int | float | None) -> int | None:
        """Parse ``(1.234)``, ``2,3 mil`` or ``5k`` into an integer count."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            if not math.isfinite(value) or value < 0:
                return None
            return int(value)

        cleaned = value.replace("(", "").replace(")", "").strip()
        if not cleaned:
            return None

        if Normalizer._THOUSANDS_MARKER_RE.search(cleaned) or re.search(
            r"\d\s*k\b", cleaned, re.IGNORECASE
        ):
            match = Normalizer._NUMBER_RE.search(cleaned.replace(",", "."))
            if not match:
                return None
            return round(float(match.group(0)) * 1000)

        digits = Normalizer._SEPARATORS_RE.sub("", cleaned)
        match = re.search(r"\d+", digits)
        if not match:
            return None
        return int(match.group(0))

    @staticmethod
    def is_free_shipping(text: str | None) -> bool:
        """Return True when a shipping blurb advertises free delivery."""
        if not text:
            return False
        lowered = text.lower()
        return any(
            word in lowered for word in Normalizer._FREE_SHIPPING_WORDS
        )
