"""Pytest configuration and fixtures.

Provides environment isolation and logging configuration. All fixtures here
are autouse unless noted; reusable doubles live in ``tests/helpers.py``.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from sluice.models import Model, ModelInfo

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests."""
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_provider_env(monkeypatch):
    """Clear OPENAI_* env vars so tests never pick up real credentials."""
    for key in list(os.environ.keys()):
        if key.startswith("OPENAI_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# =============================================================================
# Models
# =============================================================================

TEST_MODEL_ID = "test-model"


@pytest.fixture
def base_model() -> Model:
    """A model that declares no optional capabilities."""
    return Model(id=TEST_MODEL_ID)


@pytest.fixture
def capable_model() -> Model:
    """A model declaring verbosity, temperature, a flex tier and a token cap."""
    return Model(
        id=TEST_MODEL_ID,
        info=ModelInfo(
            supports_verbosity=True,
            supports_temperature=True,
            tiers=[{"name": "flex"}],
        ),
        max_tokens=256,
    )
