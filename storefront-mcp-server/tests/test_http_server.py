"""Tests for the HTTP API."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import CATALOG_URL, StepClock, catalog_client
from storefront_server import http_server
from storefront_server.catalog import CatalogStore
from storefront_server.checkout import TransactionClock
from storefront_server.storage import MemoryStore
from storefront_server.storefront import Storefront


@pytest.fixture
def client(tmp_path, monkeypatch):
    shop = Storefront(
        CatalogStore(CATALOG_URL, client=catalog_client()),
        MemoryStore(),
        receipts_dir=str(tmp_path / "receipts"),
        clock=TransactionClock(StepClock()),
    )
    monkeypatch.setattr(http_server, "storefront", shop)
    with TestClient(http_server.app) as test_client:
        yield test_client


class TestHttpServer:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.json() == {"status": "healthy", "catalog_loaded": True}

    def test_list_products(self, client: TestClient) -> None:
        response = client.get("/products", params={"sort": "asc"})

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["products"]] == ["p3", "p1", "p2"]

    def test_invalid_sort(self, client: TestClient) -> None:
        assert client.get("/products", params={"sort": "up"}).status_code == 400

    def test_cart_flow(self, client: TestClient) -> None:
        response = client.post("/cart/add", json={"product_id": "p1", "quantity": 2})
        assert response.status_code == 200
        assert response.json()["cart"]["total_units"] == 2

        response = client.post("/cart/decrease", json={"product_id": "p1"})
        assert response.json()["cart"]["lines"][0]["qty"] == 1

        response = client.post("/cart/remove", json={"product_id": "p1"})
        assert response.json()["cart"]["lines"] == []

    def test_add_unknown_product(self, client: TestClient) -> None:
        response = client.post("/cart/add", json={"product_id": "ghost"})
        assert response.status_code == 404

    def test_add_beyond_stock(self, client: TestClient) -> None:
        response = client.post("/cart/add", json={"product_id": "p3", "quantity": 2})

        assert response.status_code == 409
        assert response.json()["detail"]["remaining"] == 1
        assert client.get("/cart").json()["total_units"] == 0

    def test_checkout(self, client: TestClient) -> None:
        client.post("/cart/add", json={"product_id": "p1", "quantity": 2})

        response = client.post(
            "/checkout",
            json={"name": "Ada", "email": "ada@example.com", "download_receipt": True},
        )

        body = response.json()
        assert body["success"] is True
        assert body["status"] == "committed"
        assert float(body["receipt"]["total"]) == 20.0
        assert Path(body["exported_to"]).exists()
        assert client.get("/sales").json()["count"] == 1
        assert client.get("/cart").json()["total_units"] == 0

        product = next(p for p in client.get("/products").json()["products"] if p["id"] == "p1")
        assert product["stock"] == 3

    def test_checkout_empty_cart(self, client: TestClient) -> None:
        body = client.post("/checkout", json={"name": "Ada", "email": "ada@example.com"}).json()

        assert body["success"] is False
        assert body["reason"] == "EmptyCart"
        assert body["notices"][0]["kind"] == "info"

    def test_checkout_missing_email(self, client: TestClient) -> None:
        client.post("/cart/add", json={"product_id": "p1"})
        body = client.post("/checkout", json={"name": "Ada"}).json()

        assert body["reason"] == "MissingCustomerInfo"
        assert body["missing_fields"] == ["email"]
        assert client.get("/cart").json()["total_units"] == 1
