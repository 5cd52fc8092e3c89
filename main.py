# main.py

"""Entry point for the shop_ranker headless CLI."""

import argparse
import asyncio
import logging
import sys
from typing import NoReturn

from src.config.logging_config import setup_logging
from src.config.settings import Settings

logger = logging.getLogger("shop_ranker.main")


class _ArgumentParser(argparse.ArgumentParser):
    """argparse variant that exits with the invalid-input code (1)."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    valid_ids = ", ".join(s["id"] for s in Settings.AVAILABLE_SOURCES)

    parser = _ArgumentParser(
        prog="shop_ranker",
        description=(
            "Find, filter and rank product listings from Mercado Livre "
            "and Amazon Brazil."
        ),
        epilog=(
            f"Sources: {valid_ids}, both. Exit codes: 0 success, "
            "1 invalid input, 2 no listings from any source."
        ),
    )
    parser.add_argument("query", nargs="?", default=None, help="Search query.")
    parser.add_argument(
        "-q",
        "--query",
        dest="query_flag",
        default=None,
        help="Search query (alternative to the positional argument).",
    )
    parser.add_argument(
        "-s",
        "--source",
        default="both",
        help="ml, amazon or both (default: both).",
    )
    parser.add_argument(
        "--max-price",
        default=None,
        dest="max_price",
        help="Maximum price in BRL.",
    )
    parser.add_argument(
        "--min-rating",
        default=None,
        dest="min_rating",
        help="Minimum star rating (default: 4.0, relaxed to 3.5 when needed).",
    )
    parser.add_argument(
        "--free-shipping",
        action="store_true",
        default=False,
        dest="free_shipping",
        help="Only listings with free shipping.",
    )
    parser.add_argument(
        "--official-store",
        action="store_true",
        default=False,
        dest="official_store",
        help="Only official-store sellers.",
    )
    parser.add_argument(
        "-n",
        "--limit",
        default=None,
        help=f"Maximum results (default: {Settings.DEFAULT_LIMIT}, max: {Settings.MAX_LIMIT}).",
    )
    parser.add_argument(
        "--any-delivery",
        action="store_true",
        default=False,
        dest="any_delivery",
        help="Do not prefer listings with a confident delivery estimate.",
    )
    parser.add_argument(
        "--no-relevance",
        action="store_true",
        default=False,
        dest="no_relevance",
        help="Skip the semantic relevance filter.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Show INFO logs on stderr.",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse *argv*, folding ``--query`` into the positional query."""
    args = _build_parser().parse_args(argv)
    if args.query_flag is not None:
        args.query = args.query_flag
    return args


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, run one query and exit with its status code."""
    args = parse_args(argv)
    log_file = setup_logging(verbose=args.verbose)
    logger.info("shop_ranker starting, log file: %s", log_file)

    from src.cli.runner import cli_search

    exit_code = asyncio.run(cli_search(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
