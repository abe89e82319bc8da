"""Integration tests for the checkout endpoint."""

import json

import httpx
from fastapi.testclient import TestClient

from tests.fakes import FakeCommerceBackend

CHECKOUT_URL = "/api/v1/checkout"

BILLING = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "address_1": "1 Analytical Way",
    "city": "London",
    "postcode": "N1 1AA",
    "country": "GB",
    "email": "ada@example.com",
}


def _meta(payload: dict) -> dict:
    return {entry["key"]: entry["value"] for entry in payload["meta_data"]}


class TestSubmitCheckout:
    """Tests for POST /api/v1/checkout."""

    def test_creates_order(self, client: TestClient, commerce_backend: FakeCommerceBackend) -> None:
        """Test a valid cart creates a pending order with a price snapshot."""
        commerce_backend.add_product(1, price="10.00", stock_quantity=5)

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 2}]},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["orderId"] == 1001
        assert data["requestId"] == response.headers["X-Request-ID"]
        assert "priceChanges" not in data

        snapshot = json.loads(_meta(commerce_backend.last_order_payload())["_price_snapshot"])
        assert snapshot["subtotal"] == "20.00"
        assert snapshot["request_id"] == data["requestId"]

    def test_reports_price_changes_on_success(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        """Test price drift is returned alongside the created order."""
        commerce_backend.add_product(1, price="12.00")

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 1, "price": "10.00"}]},
        )

        assert response.status_code == 201
        [change] = response.json()["priceChanges"]
        assert change["field"] == "price"
        assert change["expected"] == "10.00"
        assert change["actual"] == "12.00"

    def test_honours_inbound_request_id(self, client: TestClient, commerce_backend: FakeCommerceBackend) -> None:
        """Test a client-supplied X-Request-ID is echoed and recorded."""
        commerce_backend.add_product(1)

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 1}]},
            headers={"X-Request-ID": "req_from_client"},
        )

        assert response.json()["requestId"] == "req_from_client"
        assert _meta(commerce_backend.last_order_payload())["_checkout_request_id"] == "req_from_client"

    def test_returns_409_when_stock_is_insufficient(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        """Test a cart with a stock problem is rejected and no order is created."""
        commerce_backend.add_product(1, stock_quantity=10)
        commerce_backend.add_product(2, name="Mug", stock_quantity=1)

        response = client.post(
            CHECKOUT_URL,
            json={
                "billing": BILLING,
                "line_items": [{"product_id": 1, "quantity": 1}, {"product_id": 2, "quantity": 3}],
            },
        )

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "validation_failed"
        assert data["out_of_stock_product_ids"] == [2]
        assert data["validation_errors"] == [
            {
                "field": "stock",
                "product_id": 2,
                "product_name": "Mug",
                "message": "Only 1 of Mug available.",
                "expected": "3",
                "actual": "1",
            }
        ]
        assert data["requestId"] == response.headers["X-Request-ID"]
        assert commerce_backend.order_requests == []

    def test_returns_409_for_out_of_stock_product(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        """Test an out-of-stock product is reported for removal from the cart."""
        commerce_backend.add_product(2, stock_status="outofstock")

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 2, "quantity": 1}]},
        )

        assert response.status_code == 409
        data = response.json()
        assert [(e["field"], e["product_id"]) for e in data["validation_errors"]] == [("stock", 2)]
        assert data["out_of_stock_product_ids"] == [2]
        assert commerce_backend.order_requests == []

    def test_returns_409_for_missing_product(self, client: TestClient) -> None:
        """Test a product deleted from the backend blocks the order."""
        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 404, "quantity": 1}]},
        )

        assert response.status_code == 409
        assert response.json()["validation_errors"][0]["field"] == "availability"

    def test_returns_400_for_missing_fields(self, client: TestClient) -> None:
        """Test a body without line items fails before any backend call."""
        response = client.post(CHECKOUT_URL, json={"billing": BILLING})

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "invalid_request"
        assert data["error"] == "Missing required fields: billing or line_items"
        assert "requestId" in data

    def test_returns_400_for_empty_line_items(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        response = client.post(CHECKOUT_URL, json={"billing": BILLING, "line_items": []})

        assert response.status_code == 400
        assert commerce_backend.requests == []

    def test_returns_400_for_invalid_quantity(self, client: TestClient) -> None:
        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 0}]},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid line_items.0.quantity")

    def test_returns_400_for_malformed_json(self, client: TestClient) -> None:
        response = client.post(
            CHECKOUT_URL,
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Request body must be valid JSON"

    def test_returns_500_after_retries_are_exhausted(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        """Test a persistently unavailable backend yields a generic 500."""
        commerce_backend.add_product(1)
        commerce_backend.order_responses.extend(
            [httpx.Response(503, json={"code": "rest_server_unavailable", "message": "Busy"}) for _ in range(3)]
        )

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 1}]},
        )

        assert response.status_code == 500
        data = response.json()
        assert data["code"] == "internal_error"
        assert "Busy" not in data["error"]
        assert len(commerce_backend.order_requests) == 3

    def test_recovers_from_a_transient_failure(
        self, client: TestClient, commerce_backend: FakeCommerceBackend
    ) -> None:
        commerce_backend.add_product(1)
        commerce_backend.order_responses.append(httpx.Response(502, json={"code": "bad_gateway"}))

        response = client.post(
            CHECKOUT_URL,
            json={"billing": BILLING, "line_items": [{"product_id": 1, "quantity": 1}]},
        )

        assert response.status_code == 201
        assert response.json()["orderId"] == 1001
        assert len(commerce_backend.order_requests) == 2

    def test_rejects_oversized_body(self, client: TestClient) -> None:
        response = client.post(
            CHECKOUT_URL,
            content=b"{}",
            headers={"Content-Type": "application/json", "Content-Length": "2000000"},
        )

        assert response.status_code == 413
        assert response.json()["code"] == "request_too_large"
