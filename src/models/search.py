# src/models/search.py

"""Query options and the assembled response document."""

from dataclasses import dataclass, field
from typing import Any

from src.models.listing import RankedListing, Source


@dataclass
class SearchOptions:
    """Validated caller input for one query."""

    query: str
    sources: list[Source] = field(
        default_factory=lambda: [Source.ML, Source.AMAZON]
    )
    max_price: float | None = None
    min_rating: float = 4.0
    free_shipping: bool = False
    official_store: bool = False
    limit: int = 10
    prefer_confident_delivery: bool = True
    relevance_filter: bool = True


@dataclass
class SearchResponse:
    """Ranked output of one query plus non-fatal warnings."""

    query: str
    options: SearchOptions
    results: list[RankedListing] = field(
        default_factory=lambda: list[RankedListing]()
    )
    warnings: list[dict[str, str]] = field(
        default_factory=lambda: list[dict[str, str]]()
    )
    effective_min_rating: float | None = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def sources(self) -> list[str]:
        """Source ids present in the results, in request order."""
        present = {r.listing.source for r in self.results}
        return [s.value for s in self.options.sources if s in present]

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the output document."""
        doc: dict[str, Any] = {
            "query": self.query,
            "total": self.total,
            "sources": self.sources,
            "filters_applied": {
                "max_price": self.options.max_price,
                "min_rating": self.options.min_rating,
                "free_shipping": self.options.free_shipping,
                "official_store": self.options.official_store,
                "effective_min_rating": self.effective_min_rating,
            },
            "results": [r.to_dict() for r in self.results],
        }
        if self.warnings:
            doc["warnings"] = list(self.warnings)
        return doc
