# src/services/search_orchestrator.py

"""Orchestrates tiered multi-source acquisition, filtering and ranking."""

import asyncio
import importlib
import logging
from typing import Any

from src.config.settings import Settings
from src.filters.filter_cascade import FilterCascade
from src.filters.relevance_filter import RelevanceFilter
from src.filters.scoring import ScoringEngine
from src.models.errors import AggregateFailure, SourceError
from src.models.listing import RankedListing, RawListing, Source
from src.models.search import SearchOptions, SearchResponse
from src.scrapers.browser_session import BrowserSession

logger = logging.getLogger("shop_ranker.orchestrator")


def _load_adapter_class(dotted_path: str) -> type[Any]:
    """Dynamically import an adapter class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def _source_config(source: Source) -> dict[str, str]:
    for entry in Settings.AVAILABLE_SOURCES:
        if entry["id"] == source.value:
            return entry
    raise KeyError(f"No adapter registered for source {source.value!r}")


class SearchOrchestrator:
    """Drive the API tier, fall back to the browser tier, then rank.

    Tiering policy: every requested source is queried through its API
    tier first.  A source whose API tier failed or returned nothing is
    retried once through its browser tier.  Adapter failures become
    warnings; the query only fails when no listing was obtained at all
    and at least one adapter failed.
    """

    def __init__(self, relevance_filter: RelevanceFilter | None = None) -> None:
        self.settings = Settings()
        self.relevance_filter = relevance_filter or RelevanceFilter()

    # ── Acquisition ──────────────────────────────────────

    @staticmethod
    def _warning(label: str, exc: BaseException) -> dict[str, str]:
        return {"source": label, "error": str(exc) or type(exc).__name__}

    async def _run_tier(
        self,
        tier: str,
        sources: list[Source],
        options: SearchOptions,
        session: BrowserSession | None = None,
    ) -> tuple[dict[Source, list[RawListing]], list[dict[str, str]]]:
        """Run one tier for *sources* concurrently.

        Returns listings keyed by source and warnings in request order.
        """

        async def run_one(source: Source) -> list[RawListing]:
            adapter_cls = _load_adapter_class(_source_config(source)[tier])
            adapter = adapter_cls(session) if tier == "browser" else adapter_cls()
            listings: list[RawListing] = await adapter.fetch(
                options.query, options.limit, options.max_price
            )
            return listings

        batches = await asyncio.gather(
            *(run_one(s) for s in sources), return_exceptions=True
        )

        found: dict[Source, list[RawListing]] = {}
        warnings: list[dict[str, str]] = []
        for source, batch in zip(sources, batches):
            label = f"{source.value}-{tier}"
            if isinstance(batch, list):
                found[source] = batch
                logger.info("%s returned %d listings", label, len(batch))
            elif isinstance(batch, SourceError):
                found[source] = []
                warnings.append(self._warning(batch.label, batch))
                logger.warning("%s failed: %s", batch.label, batch)
            elif isinstance(batch, Exception):
                found[source] = []
                warnings.append(self._warning(label, batch))
                logger.error(
                    "%s raised unexpectedly for query '%s': %s",
                    label,
                    options.query,
                    batch,
                    exc_info=batch,
                )
            else:
                raise batch
        return found, warnings

    async def acquire(
        self,
        options: SearchOptions,
    ) -> tuple[list[RawListing], list[dict[str, str]]]:
        """Collect raw listings across sources in request order."""
        by_source, warnings = await self._run_tier("api", options.sources, options)

        fallback = [s for s in options.sources if not by_source.get(s)]
        if fallback:
            logger.info(
                "Browser tier fallback for: %s",
                ", ".join(s.value for s in fallback),
            )
            async with BrowserSession() as session:
                browser_found, browser_warnings = await self._run_tier(
                    "browser", fallback, options, session
                )
            by_source.update(browser_found)
            warnings.extend(browser_warnings)

        listings: list[RawListing] = []
        for source in options.sources:
            listings.extend(by_source.get(source, []))
        return listings, warnings

    # ── Pipeline ─────────────────────────────────────────

    async def search(self, options: SearchOptions) -> SearchResponse:
        """Run the full query pipeline.

        Raises ``AggregateFailure`` when no listing was obtained and at
        least one adapter failed.
        """
        raw, warnings = await self.acquire(options)
        response = SearchResponse(
            query=options.query, options=options, warnings=warnings
        )

        if not raw:
            if warnings:
                raise AggregateFailure(warnings)
            logger.info("No source returned listings for '%s'", options.query)
            return response

        cascade = FilterCascade.apply(raw, options)
        response.effective_min_rating = cascade.effective_min_rating
        if not cascade.listings:
            return response

        scored = ScoringEngine.score_pool(cascade.listings)
        # sorted() is stable: equal scores keep discovery order
        ranked = sorted(scored, key=lambda s: s.score, reverse=True)
        ranked = ranked[: options.limit]

        if options.relevance_filter and self.settings.RELEVANCE_FILTER_ENABLED:
            relevant = await self.relevance_filter.filter(ranked, options.query)
            if ranked and not relevant:
                response.warnings.append(
                    {
                        "source": "relevance",
                        "error": (
                            "relevance filter judged none of the listings "
                            "to be the searched product"
                        ),
                    }
                )
            ranked = relevant

        response.results = [
            RankedListing.from_scored(s, rank)
            for rank, s in enumerate(ranked, start=1)
        ]
        logger.info(
            "Query '%s' ranked %d listings (%d raw, %d warnings)",
            options.query,
            response.total,
            len(raw),
            len(response.warnings),
        )
        return response
