"""Shared HTTP client for the external commerce backend."""

import logging
from functools import lru_cache
from typing import Any

import httpx

from src.core.config import get_settings

logger = logging.getLogger(__name__)

USER_AGENT = "storefront-checkout/0.1"


@lru_cache
def get_commerce_client() -> httpx.AsyncClient:
    """Get cached async HTTP client for the commerce REST API.

    The consumer key/secret pair is attached as query parameters to every
    request, and each call is bounded by the configured timeout.

    Returns:
        httpx.AsyncClient: Client bound to the backend's REST base URL.
    """
    settings = get_settings()
    return httpx.AsyncClient(
        base_url=settings.commerce_base_url,
        params={
            "consumer_key": settings.commerce_consumer_key.strip(),
            "consumer_secret": settings.commerce_consumer_secret.strip(),
        },
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        timeout=httpx.Timeout(settings.commerce_timeout_seconds),
    )


async def close_commerce_client() -> None:
    """Close the cached client, if one was created. Call at app shutdown."""
    if get_commerce_client.cache_info().currsize:
        await get_commerce_client().aclose()
        get_commerce_client.cache_clear()
        logger.info("Commerce API client closed")


async def check_commerce_connection() -> dict[str, Any]:
    """Check if the commerce backend is reachable with the configured credentials.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        response = await get_commerce_client().get("/products", params={"per_page": 1})
        if response.status_code >= 400:
            return {"healthy": False, "error": f"HTTP {response.status_code}"}
        return {"healthy": True}
    except httpx.HTTPError as e:
        return {"healthy": False, "error": type(e).__name__}
