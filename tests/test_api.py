"""Tests for the HTTP API."""

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient

from shop_core.main import app
from shop_core.presentation.api import get_unit_of_work


@pytest.fixture
async def client(uow):
    app.dependency_overrides[get_unit_of_work] = lambda: uow
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


class TestCartEndpoints:
    async def test_add_get_clear(self, client, make_product):
        product = await make_product()

        response = await client.post("/api/carts/5/items", json={"product_id": product.id, "quantity": 2})
        assert response.status_code == 200
        response = await client.post("/api/carts/5/items", json={"product_id": product.id, "quantity": 1})
        assert response.json()["items"] == [{"product_id": product.id, "quantity": 3}]

        response = await client.get("/api/carts/5")
        assert response.json() == {"customer_id": 5, "items": [{"product_id": product.id, "quantity": 3}]}

        response = await client.delete("/api/carts/5")
        assert response.status_code == 204
        assert (await client.get("/api/carts/5")).json()["items"] == []

    async def test_invalid_quantity(self, client, make_product):
        product = await make_product()

        response = await client.post("/api/carts/5/items", json={"product_id": product.id, "quantity": 0})

        assert response.status_code == 400

    async def test_checkout(self, client, make_product):
        product = await make_product(price="10.00", stock=3)
        await client.post("/api/carts/5/items", json={"product_id": product.id, "quantity": 2})

        response = await client.post(
            "/api/carts/5/checkout",
            json={"tax_amount": "1.50", "shipping_cost": "5", "special_instructions": "leave at door"},
        )

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["total_amount"]) == Decimal("26.50")
        assert body["special_instructions"] == "leave at door"
        assert (await client.get("/api/carts/5")).json()["items"] == []


class TestOrderEndpoints:
    async def test_create_and_get(self, client, make_product):
        a = await make_product(price="10.00")
        b = await make_product(price="5.00")

        response = await client.post(
            "/api/orders",
            json={
                "customer_id": 1,
                "items": [{"product_id": a.id, "quantity": 2}, {"product_id": b.id, "quantity": 1}],
                "tax_amount": "1.50",
                "shipping_cost": "5.00",
                "billing_address_id": 11,
                "shipping_address_id": 12,
            },
        )

        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "pending"
        assert Decimal(created["subtotal"]) == Decimal("25.00")
        assert Decimal(created["total_amount"]) == Decimal("31.50")

        fetched = (await client.get(f"/api/orders/{created['id']}")).json()
        assert fetched["order_number"] == created["order_number"]
        assert fetched["shipping_address_id"] == 12
        assert len(fetched["items"]) == 2

    async def test_insufficient_stock_is_conflict(self, client, make_product):
        product = await make_product(stock=1)

        response = await client.post(
            "/api/orders", json={"customer_id": 1, "items": [{"product_id": product.id, "quantity": 2}]}
        )

        assert response.status_code == 409

    async def test_unknown_product_is_not_found(self, client):
        response = await client.post(
            "/api/orders", json={"customer_id": 1, "items": [{"product_id": 999, "quantity": 1}]}
        )

        assert response.status_code == 404

    async def test_missing_order(self, client):
        assert (await client.get("/api/orders/123")).status_code == 404

    async def test_status_changes(self, client, make_product):
        product = await make_product(stock=2)
        order = (
            await client.post(
                "/api/orders", json={"customer_id": 1, "items": [{"product_id": product.id, "quantity": 2}]}
            )
        ).json()

        response = await client.post(f"/api/orders/{order['id']}/status", json={"status": "cancelled"})
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = await client.post(f"/api/orders/{order['id']}/status", json={"status": "cancelled"})
        assert response.status_code == 200

        response = await client.post(f"/api/orders/{order['id']}/status", json={"status": "shipped"})
        assert response.status_code == 400

    async def test_list_customer_orders(self, client, make_product):
        product = await make_product(stock=5)
        for _ in range(2):
            await client.post(
                "/api/orders", json={"customer_id": 8, "items": [{"product_id": product.id, "quantity": 1}]}
            )

        response = await client.get("/api/customers/8/orders")

        assert response.status_code == 200
        assert len(response.json()) == 2


class TestCouponEndpoints:
    async def test_validate(self, client, make_coupon):
        await make_coupon(code="SAVE10", discount_value="10", minimum_order_amount="100")

        response = await client.post("/api/coupons/validate", json={"code": "SAVE10", "order_subtotal": "250"})
        assert response.status_code == 200
        assert Decimal(response.json()["discount_amount"]) == Decimal("25.00")

        response = await client.post("/api/coupons/validate", json={"code": "SAVE10", "order_subtotal": "80"})
        assert response.status_code == 400

        response = await client.post("/api/coupons/validate", json={"code": "NOPE", "order_subtotal": "80"})
        assert response.status_code == 404


async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}
