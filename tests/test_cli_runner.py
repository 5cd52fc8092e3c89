# tests/test_cli_runner.py

"""Tests for CLI argument handling, output and exit codes."""

import asyncio
import io
import json
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import AsyncMock, MagicMock, patch

from main import main, parse_args
from src.cli.runner import (
    EXIT_ACQUISITION_FAILURE,
    EXIT_INVALID_INPUT,
    EXIT_OK,
    build_options,
    cli_search,
)
from src.models.errors import AggregateFailure, ArgumentError
from src.models.listing import (
    DeliveryEstimate,
    RankedListing,
    RawListing,
    ScoredListing,
    Source,
)
from src.models.search import SearchOptions, SearchResponse


def _response(options: SearchOptions) -> SearchResponse:
    scored = ScoredListing(
        listing=RawListing(
            source=Source.AMAZON, title="Kindle Paperwhite", price=799.0, rating=4.8
        ),
        delivery=DeliveryEstimate(label="≤3 days", confident=True),
        score=91.2,
    )
    return SearchResponse(
        query=options.query,
        options=options,
        results=[RankedListing.from_scored(scored, 1)],
        effective_min_rating=options.min_rating,
    )


def _orchestrator(**search_kwargs: object) -> MagicMock:
    orchestrator = MagicMock()
    orchestrator.search = AsyncMock(**search_kwargs)
    return orchestrator


class TestBuildOptions(unittest.TestCase):
    """build_options validation."""

    def test_defaults(self) -> None:
        options = build_options(parse_args(["air fryer"]))
        self.assertEqual(options.query, "air fryer")
        self.assertEqual(options.sources, [Source.ML, Source.AMAZON])
        self.assertEqual(options.min_rating, 4.0)
        self.assertEqual(options.limit, 10)
        self.assertIsNone(options.max_price)
        self.assertTrue(options.prefer_confident_delivery)
        self.assertTrue(options.relevance_filter)

    def test_all_flags(self) -> None:
        args = parse_args(
            [
                "-q", "kindle",
                "--source", "Amazon",
                "--max-price", "900",
                "--min-rating", "3",
                "--free-shipping",
                "--official-store",
                "--limit", "5",
                "--any-delivery",
                "--no-relevance",
            ]
        )
        options = build_options(args)
        self.assertEqual(options.query, "kindle")
        self.assertEqual(options.sources, [Source.AMAZON])
        self.assertEqual(options.max_price, 900.0)
        self.assertEqual(options.min_rating, 3.0)
        self.assertTrue(options.free_shipping)
        self.assertTrue(options.official_store)
        self.assertEqual(options.limit, 5)
        self.assertFalse(options.prefer_confident_delivery)
        self.assertFalse(options.relevance_filter)

    def test_limit_capped(self) -> None:
        options = build_options(parse_args(["x", "--limit", "100"]))
        self.assertEqual(options.limit, 30)

    def test_invalid_inputs(self) -> None:
        cases = [
            [],
            ["   "],
            ["x", "--source", "ebay"],
            ["x", "--max-price", "abc"],
            ["x", "--max-price", "-5"],
            ["x", "--max-price", "inf"],
            ["x", "--min-rating", "6"],
            ["x", "--limit", "0"],
            ["x", "--limit", "2.5"],
        ]
        for argv in cases:
            with self.subTest(argv=argv), self.assertRaises(ArgumentError):
                build_options(parse_args(argv))


class TestParseArgs(unittest.TestCase):
    def test_unknown_flag_exits_with_invalid_input(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            parse_args(["x", "--format", "xml"])
        self.assertEqual(ctx.exception.code, EXIT_INVALID_INPUT)


class TestCliSearch(unittest.IsolatedAsyncioTestCase):
    """cli_search exit codes and output."""

    async def _run(self, argv: list[str], orchestrator: MagicMock) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = await cli_search(parse_args(argv), orchestrator)
        return code, out.getvalue(), err.getvalue()

    async def test_success_prints_json(self) -> None:
        orchestrator = _orchestrator()
        orchestrator.search.side_effect = lambda options: _response(options)
        code, out, _ = await self._run(["kindle"], orchestrator)

        self.assertEqual(code, EXIT_OK)
        doc = json.loads(out)
        self.assertEqual(doc["query"], "kindle")
        self.assertEqual(doc["total"], 1)
        self.assertEqual(doc["sources"], ["amazon"])
        self.assertEqual(doc["results"][0]["rank"], 1)
        self.assertEqual(doc["results"][0]["estimated_delivery"], "≤3 days")
        self.assertNotIn("warnings", doc)

    async def test_empty_result_is_success(self) -> None:
        orchestrator = _orchestrator()
        orchestrator.search.side_effect = lambda options: SearchResponse(
            query=options.query, options=options
        )
        code, out, _ = await self._run(["xyzzy"], orchestrator)
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(json.loads(out)["total"], 0)

    async def test_invalid_input_exit_code(self) -> None:
        orchestrator = _orchestrator()
        code, out, err = await self._run(["x", "--limit", "zero"], orchestrator)
        self.assertEqual(code, EXIT_INVALID_INPUT)
        self.assertEqual(out, "")
        self.assertIn("--limit", err)
        orchestrator.search.assert_not_called()

    async def test_total_failure_exit_code(self) -> None:
        warnings = [
            {"source": "ml-api", "error": "HTTP 500"},
            {"source": "ml-browser", "error": "navigation timeout after 30s"},
        ]
        orchestrator = _orchestrator(side_effect=AggregateFailure(warnings))
        code, out, err = await self._run(["x", "-s", "ml"], orchestrator)
        self.assertEqual(code, EXIT_ACQUISITION_FAILURE)
        self.assertEqual(out, "")
        self.assertIn("ml-browser", err)

    async def test_query_timeout_exit_code(self) -> None:
        async def never_finishes(options: SearchOptions) -> SearchResponse:
            await asyncio.sleep(10)
            return _response(options)

        orchestrator = _orchestrator(side_effect=never_finishes)
        with patch("src.cli.runner.Settings.QUERY_TIMEOUT", 0.01):
            code, _, err = await self._run(["x"], orchestrator)
        self.assertEqual(code, EXIT_ACQUISITION_FAILURE)
        self.assertIn("timed out", err)

    async def test_table_output(self) -> None:
        orchestrator = _orchestrator()
        orchestrator.search.side_effect = lambda options: _response(options)
        code, out, _ = await self._run(["kindle", "-f", "table"], orchestrator)
        self.assertEqual(code, EXIT_OK)
        self.assertIn("Results for", out)


class TestMain(unittest.TestCase):
    def test_main_exits_with_runner_code(self) -> None:
        with (
            patch("main.setup_logging"),
            patch(
                "src.cli.runner.cli_search",
                AsyncMock(return_value=EXIT_ACQUISITION_FAILURE),
            ),
            self.assertRaises(SystemExit) as ctx,
        ):
            main(["x"])
        self.assertEqual(ctx.exception.code, EXIT_ACQUISITION_FAILURE)


if __name__ == "__main__":
    unittest.main()
