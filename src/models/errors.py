# src/models/errors.py

"""Exception taxonomy for the search pipeline."""


class ArgumentError(ValueError):
    """Missing or malformed caller input (CLI exit code 1)."""


class SourceError(Exception):
    """One adapter failed; the query continues with the other sources."""

    def __init__(self, source: str, tier: str, message: str) -> None:
        super().__init__(message)
        self.source = source
        self.tier = tier
        self.message = message

    @property
    def label(self) -> str:
        """Warning label such as ``ml-api`` or ``amazon-browser``."""
        return f"{self.source}-{self.tier}"

    def __str__(self) -> str:
        return self.message


class SourceBlockedError(SourceError):
    """The source answered with a CAPTCHA or anti-bot page."""


class TokenRefreshError(SourceError):
    """The Mercado Livre access token could not be obtained."""

    def __init__(self, message: str) -> None:
        super().__init__("ml", "api", message)


class AggregateFailure(Exception):
    """Every requested source failed and no listing was obtained."""

    def __init__(self, warnings: list[dict[str, str]]) -> None:
        self.warnings = warnings
        summary = " | ".join(
            f"{w['source']}: {w['error']}" for w in warnings
        )
        super().__init__(f"No listings obtained from any source. {summary}")


class RelevanceFilterError(Exception):
    """The semantic relevance pass failed; callers fail open."""
