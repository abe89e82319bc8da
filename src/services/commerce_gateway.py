"""Gateway to the external commerce backend's product and order endpoints."""

import logging
from typing import Any

import httpx

from src.core.commerce import get_commerce_client
from src.core.errors import BackendError
from src.models.product import CommerceProduct

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class CommerceGateway:
    """Thin async wrapper over the commerce REST API.

    Read calls translate a 404 into ``None``; every other failure is raised
    as a :class:`BackendError` whose retry classification is fixed at raise
    time. Retrying is left to callers.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize gateway with the shared HTTP client.

        Args:
            client: Optional client override (defaults to the process-wide client).
        """
        self.client = client or get_commerce_client()

    async def fetch_product(self, product_id: int) -> CommerceProduct | None:
        """Fetch a product record by ID.

        Args:
            product_id: Backend product ID.

        Returns:
            CommerceProduct | None: The product, or None if the backend has no such product.

        Raises:
            BackendError: On any other non-2xx response or a network failure.
        """
        return await self._get(f"/products/{product_id}")

    async def fetch_variation(self, product_id: int, variation_id: int) -> CommerceProduct | None:
        """Fetch one variation of a variable product.

        Args:
            product_id: Parent product ID.
            variation_id: Variation ID.

        Returns:
            CommerceProduct | None: The variation, or None if it does not exist.

        Raises:
            BackendError: On any other non-2xx response or a network failure.
        """
        return await self._get(f"/products/{product_id}/variations/{variation_id}")

    async def create_order(
        self,
        payload: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Create an order on the backend.

        Args:
            payload: Order body (billing, shipping, line_items, meta_data, ...).
            idempotency_key: Token identifying this checkout attempt, sent as a header.

        Returns:
            dict: The created order record.

        Raises:
            BackendError: If the backend rejects the order or cannot be reached.
        """
        headers = {IDEMPOTENCY_HEADER: idempotency_key} if idempotency_key else None
        response = await self._request("POST", "/orders", json=payload, headers=headers)
        if not response.is_success:
            raise self._error_from_response(response, "POST /orders")
        return self._json(response, "POST /orders")

    async def _get(self, path: str) -> dict[str, Any] | None:
        response = await self._request("GET", path)
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if not response.is_success:
            raise self._error_from_response(response, f"GET {path}")
        return self._json(response, f"GET {path}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        # Messages use the path only; the full URL carries API credentials.
        try:
            return await self.client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Commerce backend timed out: %s %s", method, path)
            raise BackendError.network(f"Timed out calling {method} {path}") from e
        except httpx.RequestError as e:
            logger.warning("Commerce backend unreachable: %s %s (%s)", method, path, type(e).__name__)
            raise BackendError.network(f"Could not reach commerce backend for {method} {path}") from e

    @staticmethod
    def _json(response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise BackendError(
                f"Invalid JSON from commerce backend for {operation}",
                status_code=httpx.codes.BAD_GATEWAY,
                code="invalid_response",
            ) from e
        if not isinstance(data, dict):
            raise BackendError(
                f"Unexpected response shape from commerce backend for {operation}",
                status_code=httpx.codes.BAD_GATEWAY,
                code="invalid_response",
            )
        return data

    @staticmethod
    def _error_from_response(response: httpx.Response, operation: str) -> BackendError:
        code = None
        message = f"{operation} failed with HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            code = body.get("code") if isinstance(body.get("code"), str) else None
            if isinstance(body.get("message"), str) and body["message"]:
                message = f"{operation} failed: {body['message']}"

        error = BackendError(message, status_code=response.status_code, code=code)
        logger.warning(
            "Commerce backend error: %s (status=%d, code=%s, kind=%s)",
            operation,
            response.status_code,
            code,
            error.kind.value,
        )
        return error
