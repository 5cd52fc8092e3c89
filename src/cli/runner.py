# src/cli/runner.py

"""Headless CLI search runner: validate, orchestrate, print, exit code."""

import argparse
import asyncio
import json
import logging
import math
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from src.config.settings import Settings
from src.models.errors import AggregateFailure, ArgumentError
from src.models.listing import Source
from src.models.search import SearchOptions, SearchResponse
from src.services.search_orchestrator import SearchOrchestrator

logger = logging.getLogger("shop_ranker.cli")

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_ACQUISITION_FAILURE = 2

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)

_SOURCE_CHOICES: dict[str, list[Source]] = {
    "ml": [Source.ML],
    "amazon": [Source.AMAZON],
    "both": [Source.ML, Source.AMAZON],
}


def _parse_number(flag: str, raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ArgumentError(f"{flag} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ArgumentError(f"{flag} must be finite, got {raw!r}")
    return value


def build_options(args: argparse.Namespace) -> SearchOptions:
    """Validate parsed CLI arguments into ``SearchOptions``.

    Raises ``ArgumentError`` on missing or malformed input.
    """
    query = (args.query or "").strip()
    if not query:
        raise ArgumentError("a non-empty search query is required")

    source = (args.source or "both").strip().lower()
    if source not in _SOURCE_CHOICES:
        raise ArgumentError(
            f"--source must be one of {', '.join(_SOURCE_CHOICES)}, got {args.source!r}"
        )

    max_price = _parse_number("--max-price", args.max_price)
    if max_price is not None and max_price <= 0:
        raise ArgumentError("--max-price must be positive")

    min_rating = _parse_number("--min-rating", args.min_rating)
    if min_rating is None:
        min_rating = Settings.DEFAULT_MIN_RATING
    if not 0 <= min_rating <= 5:
        raise ArgumentError("--min-rating must be between 0 and 5")

    limit_value = _parse_number("--limit", args.limit)
    if limit_value is None:
        limit = Settings.DEFAULT_LIMIT
    elif limit_value != int(limit_value) or limit_value < 1:
        raise ArgumentError("--limit must be a positive integer")
    else:
        limit = min(int(limit_value), Settings.MAX_LIMIT)

    return SearchOptions(
        query=query,
        sources=list(_SOURCE_CHOICES[source]),
        max_price=max_price,
        min_rating=min_rating,
        free_shipping=bool(args.free_shipping),
        official_store=bool(args.official_store),
        limit=limit,
        prefer_confident_delivery=not args.any_delivery,
        relevance_filter=not args.no_relevance,
    )


def _print_table(response: SearchResponse) -> None:
    """Render a Rich table of ranked listings to stdout."""
    table = Table(
        title=f"Results for '{response.query}'",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("#", style="dim", width=4)
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right", style="green")
    table.add_column("Rating", justify="center")
    table.add_column("Delivery")
    table.add_column("Source", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for r in response.results:
        item = r.listing
        rating = (
            f"{item.rating:.1f} ({item.review_count or 0})"
            if item.rating is not None
            else "—"
        )
        table.add_row(
            str(r.rank),
            f"{r.score:.1f}",
            item.title[:60],
            f"R$ {item.price:,.2f}",
            rating,
            r.delivery.label,
            item.source.value,
            item.permalink,
        )

    Console().print(table)


def _emit_error(message: str, warnings: list[dict[str, str]] | None = None) -> None:
    payload: dict[str, Any] = {"error": message}
    if warnings:
        payload["warnings"] = warnings
    sys.stderr.write(json.dumps(payload, ensure_ascii=False) + "\n")


async def cli_search(
    args: argparse.Namespace,
    orchestrator: SearchOrchestrator | None = None,
) -> int:
    """Run a headless search and return the process exit code."""
    try:
        options = build_options(args)
    except ArgumentError as exc:
        logger.warning("Invalid input: %s", exc)
        _emit_error(str(exc))
        return EXIT_INVALID_INPUT

    orchestrator = orchestrator or SearchOrchestrator()
    _err.print(
        f"[bold]Searching:[/bold] {options.query}  "
        f"[dim]sources={', '.join(s.value for s in options.sources)}[/dim]"
    )

    try:
        response = await asyncio.wait_for(
            orchestrator.search(options), timeout=Settings.QUERY_TIMEOUT
        )
    except AggregateFailure as exc:
        logger.error("Total acquisition failure: %s", exc)
        _emit_error(str(exc), exc.warnings)
        return EXIT_ACQUISITION_FAILURE
    except asyncio.TimeoutError:
        logger.error("Query '%s' exceeded %.0fs", options.query, Settings.QUERY_TIMEOUT)
        _emit_error(f"query timed out after {Settings.QUERY_TIMEOUT:.0f}s")
        return EXIT_ACQUISITION_FAILURE

    for warning in response.warnings:
        _err.print(f"[yellow]Warning ({warning['source']}): {warning['error']}[/yellow]")
    if response.total:
        _err.print(f"[green]✓ {response.total} ranked listings[/green]")
    else:
        _err.print("[yellow]No listings matched the filters.[/yellow]")

    if args.output_format == "table":
        _print_table(response)
    else:
        json.dump(response.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")
    return EXIT_OK
