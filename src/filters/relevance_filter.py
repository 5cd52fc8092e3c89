# src/filters/relevance_filter.py

"""Optional semantic pass that drops parts and accessories.

The ranked list goes to a small Claude model which answers with the
indices of the listings that really are the searched product family.
Every failure mode (no key, network error, timeout, unparsable reply)
fails open and returns the list untouched.

An explicit empty array is honoured: the model judged that nothing
matches, so the caller gets an empty result and a warning.
"""

import asyncio
import json
import logging
import re
from typing import Any

import anthropic

from src.config.settings import Settings
from src.models.errors import RelevanceFilterError
from src.models.listing import ScoredListing

logger = logging.getLogger("shop_ranker.relevance")

_INDEX_ARRAY_RE = re.compile(r"\[[\d,\s]*\]")

_PROMPT = (
    'Busca do usuário: "{query}"\n\n'
    "Produtos encontrados:\n{listing}\n\n"
    "Quais desses produtos (pelos índices) SÃO realmente o que o usuário "
    "buscou e NÃO são peças, acessórios, tampas, correias, adaptadores, "
    "kits de reparo ou itens meramente relacionados? Responda SOMENTE com "
    "um array JSON de índices válidos, sem texto extra. Exemplo: [0, 2, 4]"
)


class RelevanceFilter:
    """Classify ranked listings with the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        client: Any | None = None,
    ) -> None:
        self.api_key = (
            Settings.ANTHROPIC_API_KEY if api_key is None else api_key
        )
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise RelevanceFilterError("ANTHROPIC_API_KEY not configured")
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=Settings.RELEVANCE_TIMEOUT,
                max_retries=0,
            )
        return self._client

    @staticmethod
    def build_prompt(listings: list[ScoredListing], query: str) -> str:
        """Render the indexed title/price list for the classifier."""
        lines = "\n".join(
            f"{i}: {s.listing.title} — R${s.listing.price:.2f}"
            for i, s in enumerate(listings)
        )
        return _PROMPT.format(query=query, listing=lines)

    @staticmethod
    def parse_indices(text: str, count: int) -> list[int]:
        """Extract the index array from a free-form reply.

        Out-of-range and repeated indices are discarded; the result is
        sorted so kept listings retain their ranked order.
        """
        match = _INDEX_ARRAY_RE.search(text)
        if not match:
            raise RelevanceFilterError(
                f"no index array in response: {text[:80]!r}"
            )
        try:
            raw = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise RelevanceFilterError(f"invalid index array: {exc}") from exc
        return sorted({i for i in raw if isinstance(i, int) and 0 <= i < count})

    def _classify(self, listings: list[ScoredListing], query: str) -> list[int]:
        client = self._get_client()
        try:
            message = client.messages.create(
                model=Settings.RELEVANCE_MODEL,
                max_tokens=Settings.RELEVANCE_MAX_TOKENS,
                messages=[
                    {
                        "role": "user",
                        "content": self.build_prompt(listings, query),
                    }
                ],
            )
        except anthropic.APIError as exc:
            raise RelevanceFilterError(f"classifier call failed: {exc}") from exc

        text = "".join(
            getattr(block, "text", "")
            for block in message.content
            if getattr(block, "type", "") == "text"
        )
        return self.parse_indices(text, len(listings))

    async def filter(
        self,
        listings: list[ScoredListing],
        query: str,
    ) -> list[ScoredListing]:
        """Return the relevant subset, or *listings* unchanged on failure."""
        if not listings:
            return listings
        if not self.configured:
            logger.debug("Relevance filter skipped: ANTHROPIC_API_KEY not configured")
            return listings
        try:
            indices = await asyncio.to_thread(self._classify, listings, query)
        except RelevanceFilterError as exc:
            logger.info("Relevance filter skipped: %s", exc)
            return listings
        except Exception as exc:
            logger.error(
                "Relevance filter failed unexpectedly: %s", exc, exc_info=True
            )
            return listings

        logger.info(
            "Relevance filter kept %d of %d listings",
            len(indices),
            len(listings),
        )
        return [listings[i] for i in indices]
