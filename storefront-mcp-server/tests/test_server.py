"""Tests for the MCP tool handlers."""

import json

import pytest
from pydantic import AnyUrl

from conftest import CATALOG_URL, StepClock, catalog_client
from storefront_server import server
from storefront_server.catalog import CatalogStore
from storefront_server.checkout import TransactionClock
from storefront_server.storage import MemoryStore
from storefront_server.storefront import Storefront


@pytest.fixture
def shop(tmp_path, monkeypatch) -> Storefront:
    shop = Storefront(
        CatalogStore(CATALOG_URL, client=catalog_client()),
        MemoryStore(),
        receipts_dir=str(tmp_path / "receipts"),
        clock=TransactionClock(StepClock()),
    )
    shop.catalog.load()
    monkeypatch.setattr(server, "storefront", shop, raising=False)
    return shop


async def call(name: str, /, **arguments) -> str:
    [content] = await server.call_tool(name, arguments)
    return content.text


class TestTools:
    @pytest.mark.asyncio
    async def test_tools_are_listed(self) -> None:
        names = {tool.name for tool in await server.list_tools()}
        assert {
            "storefront_list_products",
            "storefront_add_to_cart",
            "storefront_checkout",
            "storefront_get_sales",
        } <= names

    @pytest.mark.asyncio
    async def test_list_products(self, shop) -> None:
        text = await call("storefront_list_products", query="widget")
        assert "Found 1 product(s)" in text
        assert "ID: p1" in text

    @pytest.mark.asyncio
    async def test_list_products_no_match(self, shop) -> None:
        assert await call("storefront_list_products", query="zzz") == "No products found for: zzz"

    @pytest.mark.asyncio
    async def test_add_and_view_cart(self, shop) -> None:
        text = await call("storefront_add_to_cart", product_id="p1", quantity=2)
        assert text.startswith("✅")

        text = await call("storefront_get_cart")
        assert "Shopping Cart (2 items)" in text
        assert "Estimated total: 20.00" in text

    @pytest.mark.asyncio
    async def test_add_beyond_stock(self, shop) -> None:
        text = await call("storefront_add_to_cart", product_id="p3", quantity=2)

        assert text.startswith("❌")
        assert "only 1 left" in text
        assert shop.cart.is_empty()

    @pytest.mark.asyncio
    async def test_add_unknown_product(self, shop) -> None:
        text = await call("storefront_add_to_cart", product_id="ghost")
        assert text == "❌ Product not found: ghost"

    @pytest.mark.asyncio
    async def test_missing_argument(self, shop) -> None:
        text = await call("storefront_remove_from_cart")
        assert text.startswith("Error: Invalid arguments")

    @pytest.mark.asyncio
    async def test_empty_cart(self, shop) -> None:
        assert await call("storefront_get_cart") == "Your cart is empty"

    @pytest.mark.asyncio
    async def test_checkout(self, shop) -> None:
        await call("storefront_add_to_cart", product_id="p1", quantity=2)

        text = await call(
            "storefront_checkout", name="Ada", email="ada@example.com", download_receipt=True
        )

        assert "Purchase complete" in text
        assert "Total: 20.00" in text
        assert "Receipt saved to" in text
        assert shop.catalog.find_by_id("p1").stock == 3
        assert "1 sale(s)" in await call("storefront_get_sales")

    @pytest.mark.asyncio
    async def test_checkout_missing_info(self, shop) -> None:
        await call("storefront_add_to_cart", product_id="p1")

        text = await call("storefront_checkout", name="Ada", email="")

        assert "missing email" in text
        assert "Missing details" in text
        assert shop.cart.total_units() == 1

    @pytest.mark.asyncio
    async def test_checkout_empty_cart(self, shop) -> None:
        text = await call("storefront_checkout", name="Ada", email="ada@example.com")
        assert text.startswith("Your cart is empty")

    @pytest.mark.asyncio
    async def test_reload_catalog_failure(self, shop) -> None:
        shop.catalog._client = catalog_client(status_code=500)

        text = await call("storefront_reload_catalog")

        assert text.startswith("❌ Could not load products")
        assert shop.catalog.products == []

    @pytest.mark.asyncio
    async def test_unknown_tool(self, shop) -> None:
        assert await call("storefront_fly") == "Unknown tool: storefront_fly"


class TestResources:
    @pytest.mark.asyncio
    async def test_read_cart(self, shop) -> None:
        await shop.add_to_cart("p2")

        data = json.loads(await server.read_resource(AnyUrl("storefront://cart")))

        assert data["lines"][0]["id"] == "p2"
        assert data["total_units"] == 1

    @pytest.mark.asyncio
    async def test_read_products(self, shop) -> None:
        data = json.loads(await server.read_resource(AnyUrl("storefront://products")))
        assert [p["id"] for p in data] == ["p1", "p2", "p3"]

    @pytest.mark.asyncio
    async def test_unknown_resource(self, shop) -> None:
        with pytest.raises(ValueError):
            await server.read_resource(AnyUrl("storefront://nowhere"))
