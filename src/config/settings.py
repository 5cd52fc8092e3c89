# src/config/settings.py

"""Central configuration for the shop_ranker engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Central configuration for the shop_ranker engine."""

    # --- Credentials (from environment / .env) ---
    RAPIDAPI_KEY: str = os.getenv("RAPIDAPI_KEY", "")
    ML_APP_ID: str = os.getenv("ML_APP_ID", "")
    ML_APP_SECRET: str = os.getenv("ML_APP_SECRET", "")
    ML_REFRESH_TOKEN: str = os.getenv("ML_REFRESH_TOKEN", "")
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")

    # --- Timeouts (seconds, no automatic retries) ---
    ML_API_TIMEOUT: int = 20
    AMAZON_API_TIMEOUT: int = 15
    TOKEN_TIMEOUT: int = 15
    BROWSER_NAV_TIMEOUT: int = 30
    BROWSER_SELECTOR_TIMEOUT: int = 15
    RELEVANCE_TIMEOUT: float = 15.0
    QUERY_TIMEOUT: float = 120.0

    # --- Query options ---
    DEFAULT_LIMIT: int = 10
    MAX_LIMIT: int = 30
    DEFAULT_MIN_RATING: float = 4.0
    FALLBACK_MIN_RATING: float = 3.5
    MIN_POOL_SIZE: int = 3              # Relaxation trigger for cascades
    PRICE_SANITY_MAX: float = 1_000_000.0

    # --- Scoring weights (sum to 1.0) ---
    WEIGHT_PRICE: float = 0.35
    WEIGHT_RATING: float = 0.25
    WEIGHT_REVIEWS: float = 0.15
    WEIGHT_SHIPPING: float = 0.15
    WEIGHT_SELLER: float = 0.10
    PAID_SHIPPING_SCORE: float = 0.3

    # --- Relevance filter ---
    RELEVANCE_FILTER_ENABLED: bool = True
    RELEVANCE_MODEL: str = "claude-haiku-4-5-20251001"
    RELEVANCE_MAX_TOKENS: int = 256

    # --- Endpoints ---
    ML_SEARCH_URL: str = "https://api.mercadolibre.com/sites/MLB/search"
    ML_TOKEN_URL: str = "https://api.mercadolibre.com/oauth/token"
    ML_RAPIDAPI_HOST: str = "mercado-libre7.p.rapidapi.com"
    AMAZON_RAPIDAPI_HOST: str = "real-time-amazon-data.p.rapidapi.com"
    ML_LISTING_URL: str = "https://lista.mercadolivre.com.br/{slug}"
    AMAZON_SEARCH_URL: str = "https://www.amazon.com.br/s?k={query}"

    # --- Block detection ---
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
        "digite os caracteres",
        "type the characters you see",
        "tráfego incomum",
    ]

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    USER_AGENT: str = "shop-ranker/1.0"
    BROWSER_LOCALE: str = "pt-BR"
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    LOGS_DIR: Path = BASE_DIR / "logs"
    TOKEN_PATH: Path = Path(
        os.getenv(
            "SHOP_RANKER_TOKEN_PATH",
            str(Path.home() / ".config" / "shop_ranker" / "ml_token.json"),
        )
    )

    # --- Sources (request order for "both") ---
    AVAILABLE_SOURCES: list[dict[str, str]] = [
        {
            "id": "ml",
            "label": "Mercado Livre",
            "api": "src.scrapers.ml_api_adapter.MercadoLivreApiAdapter",
            "browser": (
                "src.scrapers.ml_browser_adapter.MercadoLivreBrowserAdapter"
            ),
        },
        {
            "id": "amazon",
            "label": "Amazon",
            "api": "src.scrapers.amazon_api_adapter.AmazonApiAdapter",
            "browser": (
                "src.scrapers.amazon_browser_adapter.AmazonBrowserAdapter"
            ),
        },
    ]
