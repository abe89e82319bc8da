"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import httpx
import pytest
from fastapi.testclient import TestClient

from tests.fakes import COMMERCE_BASE_URL, FakeCommerceBackend

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("COMMERCE_API_URL", "https://shop.test")
os.environ.setdefault("COMMERCE_CONSUMER_KEY", "ck_test_key")
os.environ.setdefault("COMMERCE_CONSUMER_SECRET", "cs_test_secret")
os.environ.setdefault("CHECKOUT_RETRY_INITIAL_DELAY_MS", "0")
os.environ.setdefault("CHECKOUT_RETRY_MAX_DELAY_MS", "0")
os.environ.setdefault("CHECKOUT_RETRY_JITTER_MS", "0")


@pytest.fixture
def commerce_backend() -> FakeCommerceBackend:
    """Provide an empty fake commerce backend."""
    return FakeCommerceBackend()


@pytest.fixture
def commerce_client(commerce_backend: FakeCommerceBackend) -> httpx.AsyncClient:
    """Provide an httpx client wired to the fake backend."""
    return httpx.AsyncClient(
        base_url=COMMERCE_BASE_URL,
        params={"consumer_key": "ck_test_key", "consumer_secret": "cs_test_secret"},
        transport=httpx.MockTransport(commerce_backend.handler),
    )


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    get_settings.cache_clear()


@pytest.fixture
def client(commerce_client: httpx.AsyncClient) -> Generator[TestClient, None, None]:
    """Provide a test client whose backend calls go to the fake backend.

    Args:
        commerce_client: HTTP client bound to the fake backend.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    with patch("src.services.commerce_gateway.get_commerce_client", return_value=commerce_client):
        with TestClient(app) as test_client:
            yield test_client
