# tests/test_api_adapters.py

"""Tests for the Mercado Livre and Amazon API adapters with mocked HTTP."""

import unittest
from pathlib import Path
from unittest.mock import MagicMock

from curl_cffi import requests as curl_requests

from src.models.errors import SourceBlockedError, SourceError, TokenRefreshError
from src.models.listing import Condition, LogisticsTier, SellerTier, Source
from src.scrapers.amazon_api_adapter import AmazonApiAdapter
from src.scrapers.ml_api_adapter import MercadoLivreApiAdapter
from src.services.token_provider import MercadoLivreTokenProvider

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _response(status_code: int = 200, fixture: str = "", text: str = "") -> MagicMock:
    """Build a fake curl_cffi response."""
    resp = MagicMock()
    resp.status_code = status_code
    if fixture:
        with open(FIXTURES_DIR / fixture, encoding="utf-8") as f:
            resp.text = f.read()
    else:
        resp.text = text
    return resp


def _token_provider(configured: bool = True) -> MagicMock:
    provider = MagicMock(spec=MercadoLivreTokenProvider)
    provider.configured = configured
    provider.get_access_token.return_value = "APP_USR-test-token"
    return provider


class TestMercadoLivreOfficialApi(unittest.TestCase):
    """Official /sites/MLB/search variant."""

    def setUp(self) -> None:
        self.adapter = MercadoLivreApiAdapter(token_provider=_token_provider())
        self.adapter.session = MagicMock()
        self.adapter.session.get.return_value = _response(
            fixture="ml_official_search.json"
        )

    def test_variant_selected_by_oauth(self) -> None:
        self.assertEqual(self.adapter.variant, "official")

    def test_parses_listings_and_drops_unpriced(self) -> None:
        listings = self.adapter.search("air fryer", limit=10)
        self.assertEqual(len(listings), 3)
        self.assertTrue(all(item.source is Source.ML for item in listings))

    def test_official_store_fulfillment(self) -> None:
        first = self.adapter.search("air fryer", limit=10)[0]
        self.assertEqual(first.seller_tier, SellerTier.OFFICIAL_STORE)
        self.assertEqual(first.seller_name, "Mondial")
        self.assertEqual(first.logistics, LogisticsTier.FULFILLMENT)
        self.assertTrue(first.free_shipping)
        self.assertEqual(first.rating, 4.7)
        self.assertEqual(first.review_count, 5321)

    def test_power_seller_and_logistics(self) -> None:
        second = self.adapter.search("air fryer", limit=10)[1]
        self.assertEqual(second.seller_tier, SellerTier.GOLD)
        self.assertEqual(second.logistics, LogisticsTier.DROP_OFF)
        self.assertEqual(second.price, 279.0)

    def test_used_condition(self) -> None:
        last = self.adapter.search("air fryer", limit=10)[-1]
        self.assertEqual(last.condition, Condition.USED)
        self.assertEqual(last.logistics, LogisticsTier.CROSS_DOCKING)
        self.assertIsNone(last.rating)

    def test_limit_and_max_price(self) -> None:
        listings = self.adapter.search("air fryer", limit=10, max_price=300.0)
        self.assertEqual([item.price for item in listings], [279.0, 199.5])
        self.assertEqual(len(self.adapter.search("air fryer", limit=1)), 1)

    def test_sends_bearer_token_and_price_range(self) -> None:
        self.adapter.search("air fryer", limit=5, max_price=300.0)
        kwargs = self.adapter.session.get.call_args.kwargs
        self.assertEqual(
            kwargs["headers"]["Authorization"], "Bearer APP_USR-test-token"
        )
        self.assertEqual(kwargs["params"]["price"], "*-300")
        self.assertEqual(kwargs["params"]["limit"], "5")

    def test_token_failure_becomes_source_error(self) -> None:
        provider = _token_provider()
        provider.get_access_token.side_effect = TokenRefreshError(
            "auth failure: token refresh returned HTTP 400"
        )
        adapter = MercadoLivreApiAdapter(token_provider=provider)
        with self.assertRaises(SourceError) as ctx:
            adapter.search("air fryer", limit=10)
        self.assertEqual(ctx.exception.label, "ml-api")
        self.assertIn("auth failure", str(ctx.exception))


class TestMercadoLivreRapidApi(unittest.TestCase):
    """RapidAPI listing variant."""

    def setUp(self) -> None:
        self.adapter = MercadoLivreApiAdapter(
            token_provider=_token_provider(configured=False),
            rapidapi_key="rapid-key",
        )
        self.adapter.session = MagicMock()
        self.adapter.session.get.return_value = _response(
            fixture="ml_rapidapi_search.json"
        )

    def test_variant(self) -> None:
        self.assertEqual(self.adapter.variant, "rapidapi")

    def test_parses_display_strings(self) -> None:
        listings = self.adapter.search("fone jbl", limit=10)
        self.assertEqual(len(listings), 2)
        first = listings[0]
        self.assertAlmostEqual(first.price, 249.90)
        self.assertEqual(first.rating, 4.8)
        self.assertEqual(first.review_count, 12345)
        self.assertTrue(first.free_shipping)

    def test_refurbished_is_used(self) -> None:
        second = self.adapter.search("fone jbl", limit=10)[1]
        self.assertEqual(second.condition, Condition.USED)
        self.assertEqual(second.seller_name, "Vendedor ML")
        self.assertIsNone(second.rating)
        self.assertFalse(second.free_shipping)

    def test_sends_rapidapi_headers(self) -> None:
        self.adapter.search("fone jbl", limit=10)
        kwargs = self.adapter.session.get.call_args.kwargs
        self.assertEqual(kwargs["headers"]["X-RapidAPI-Key"], "rapid-key")
        self.assertEqual(kwargs["params"]["search_str"], "fone jbl")

    def test_missing_key_is_auth_failure(self) -> None:
        adapter = MercadoLivreApiAdapter(
            token_provider=_token_provider(configured=False), rapidapi_key=""
        )
        with self.assertRaises(SourceError) as ctx:
            adapter.search("fone", limit=10)
        self.assertIn("RAPIDAPI_KEY", str(ctx.exception))


class TestAmazonApi(unittest.TestCase):
    """Real-Time Amazon Data search."""

    def setUp(self) -> None:
        self.adapter = AmazonApiAdapter(rapidapi_key="rapid-key")
        self.adapter.session = MagicMock()
        self.adapter.session.get.return_value = _response(
            fixture="amazon_rapidapi_search.json"
        )

    def test_parses_products(self) -> None:
        listings = self.adapter.search("kindle", limit=10)
        self.assertEqual(len(listings), 2)
        self.assertTrue(all(item.source is Source.AMAZON for item in listings))

    def test_prime_offer(self) -> None:
        first = self.adapter.search("kindle", limit=10)[0]
        self.assertEqual(first.price, 799.0)
        self.assertEqual(first.rating, 4.8)
        self.assertEqual(first.review_count, 2345)
        self.assertTrue(first.free_shipping)
        self.assertEqual(first.logistics, LogisticsTier.FULFILLMENT)
        self.assertEqual(first.seller_name, "Amazon.com.br")

    def test_marketplace_offer(self) -> None:
        second = self.adapter.search("kindle", limit=10)[1]
        self.assertFalse(second.free_shipping)
        self.assertEqual(second.logistics, LogisticsTier.UNKNOWN)
        self.assertIsNone(second.review_count)

    def test_max_price_forwarded_and_enforced(self) -> None:
        listings = self.adapter.search("kindle", limit=10, max_price=100.0)
        self.assertEqual([item.price for item in listings], [59.9])
        params = self.adapter.session.get.call_args.kwargs["params"]
        self.assertEqual(params["max_price"], "100")
        self.assertEqual(params["country"], "BR")


class TestApiErrors(unittest.TestCase):
    """Error taxonomy shared by both API adapters."""

    def setUp(self) -> None:
        self.adapter = AmazonApiAdapter(rapidapi_key="rapid-key")
        self.adapter.session = MagicMock()

    def _search_error(self) -> SourceError:
        with self.assertRaises(SourceError) as ctx:
            self.adapter.search("kindle", limit=10)
        return ctx.exception

    def test_auth_failure(self) -> None:
        self.adapter.session.get.return_value = _response(403, text="Forbidden")
        err = self._search_error()
        self.assertIn("auth failure (HTTP 403)", str(err))
        self.assertEqual(err.label, "amazon-api")

    def test_server_error(self) -> None:
        self.adapter.session.get.return_value = _response(503, text="busy")
        self.assertIn("HTTP 503", str(self._search_error()))

    def test_timeout(self) -> None:
        self.adapter.session.get.side_effect = curl_requests.RequestsError(
            "Operation timed out after 15000 milliseconds"
        )
        self.assertIn("timeout after 15s", str(self._search_error()))

    def test_connection_failure(self) -> None:
        self.adapter.session.get.side_effect = curl_requests.RequestsError(
            "Could not resolve host"
        )
        self.assertIn("request failed", str(self._search_error()))

    def test_captcha_page_is_blocked(self) -> None:
        self.adapter.session.get.return_value = _response(
            fixture="amazon_captcha.html"
        )
        self.assertIsInstance(self._search_error(), SourceBlockedError)

    def test_malformed_json(self) -> None:
        self.adapter.session.get.return_value = _response(text='{"data": ')
        self.assertIn("malformed JSON", str(self._search_error()))

    def test_unexpected_structure(self) -> None:
        self.adapter.session.get.return_value = _response(text="[1, 2]")
        self.assertIn("unexpected response structure", str(self._search_error()))

    def test_empty_product_list_is_not_an_error(self) -> None:
        self.adapter.session.get.return_value = _response(
            text='{"status": "OK", "data": {"products": []}}'
        )
        self.assertEqual(self.adapter.search("kindle", limit=10), [])


class TestFetch(unittest.IsolatedAsyncioTestCase):
    async def test_fetch_runs_search_in_thread(self) -> None:
        adapter = AmazonApiAdapter(rapidapi_key="rapid-key")
        adapter.session = MagicMock()
        adapter.session.get.return_value = _response(
            fixture="amazon_rapidapi_search.json"
        )
        listings = await adapter.fetch("kindle", 1)
        self.assertEqual(len(listings), 1)
        adapter.session.close.assert_called_once()

    async def test_fetch_closes_session_on_failure(self) -> None:
        adapter = AmazonApiAdapter(rapidapi_key="rapid-key")
        adapter.session = MagicMock()
        adapter.session.get.return_value = _response(503, text="unavailable")
        with self.assertRaises(SourceError):
            await adapter.fetch("kindle", 1)
        adapter.session.close.assert_called_once()

    def test_default_token_provider_shares_adapter_session(self) -> None:
        adapter = MercadoLivreApiAdapter()
        self.addCleanup(adapter.session.close)
        self.assertIs(adapter.token_provider.session, adapter.session)


if __name__ == "__main__":
    unittest.main()
