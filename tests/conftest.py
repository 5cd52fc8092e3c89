# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest

from src.config.settings import Settings


@pytest.fixture(autouse=True)
def isolated_credentials(tmp_path: Path) -> Generator[None, None, None]:
    """Blank every credential so no test can reach a real service."""
    with patch.multiple(
        Settings,
        RAPIDAPI_KEY="",
        ML_APP_ID="",
        ML_APP_SECRET="",
        ML_REFRESH_TOKEN="",
        ANTHROPIC_API_KEY="",
        TOKEN_PATH=tmp_path / "ml_token.json",
    ):
        yield
