"""MCP Server for the storefront."""

import asyncio
import logging
from typing import Any

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .errors import CatalogUnavailable, StorefrontError
from .models import CartView, CheckoutResult, CheckoutStatus, Customer, RejectionReason
from .presentation import ToolPresenter
from .storefront import Storefront

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-mcp-server")

# Initialize server
app = Server("storefront-mcp-server")

# Global state
storefront: Storefront


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def format_cart(cart: CartView) -> str:
    """Render a cart view as text."""
    if not cart.lines:
        return "Your cart is empty"

    result_lines = [f"Shopping Cart ({cart.total_units} items):\n"]
    for line in cart.lines:
        result_lines.append(
            f"  - {line.snapshot.title} (ID {line.product_id}): "
            f"{line.quantity} x {line.snapshot.price:.2f}"
        )
    result_lines.append(f"\nEstimated total: {cart.estimated_total:.2f}")
    return "\n".join(result_lines)


def format_checkout(result: CheckoutResult, notices: str) -> str:
    """Render a checkout outcome, including any notices raised along the way."""
    if result.status is CheckoutStatus.COMMITTED and result.receipt:
        receipt = result.receipt
        lines = [
            f"✅ Purchase complete. Thank you, {receipt.customer.name}.",
            f"Transaction ID: {receipt.transaction_id}",
        ]
        for item in receipt.items:
            lines.append(f"  - {item.title} x{item.quantity} @ {item.price:.2f} = {item.subtotal:.2f}")
        lines.append(f"Total: {receipt.total:.2f}")
        if result.exported_to:
            lines.append(f"Receipt saved to {result.exported_to}")
        if notices:
            lines.append(notices)
        return "\n".join(lines)

    if result.status is CheckoutStatus.CANCELLED:
        text = "Checkout cancelled. Nothing was charged."
    elif result.reason is RejectionReason.MISSING_CUSTOMER_INFO:
        text = f"❌ Checkout rejected: missing {', '.join(result.missing_fields)}"
    elif result.reason is RejectionReason.INSUFFICIENT_STOCK:
        text = "❌ Checkout rejected: insufficient stock"
    else:
        text = "Your cart is empty. Add products before checking out."
    return f"{text}\n{notices}" if notices else text


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("storefront://products"),
            name="Product Catalog",
            mimeType="application/json",
            description="Products currently offered, with live stock",
        ),
        Resource(
            uri=AnyUrl("storefront://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents",
        ),
        Resource(
            uri=AnyUrl("storefront://sales"),
            name="Sales Log",
            mimeType="application/json",
            description="Receipts of completed purchases",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "storefront://products":
        products = await storefront.list_products()
        return "[" + ",".join(p.model_dump_json() for p in products) + "]"

    if uri_str == "storefront://cart":
        cart = await storefront.view_cart()
        return cart.model_dump_json(by_alias=True, indent=2)

    if uri_str == "storefront://sales":
        receipts = await storefront.sales_history()
        return "[" + ",".join(r.model_dump_json(by_alias=True) for r in receipts) + "]"

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    product_id_schema = {
        "type": "object",
        "properties": {
            "product_id": {
                "type": "string",
                "description": "Product ID from the product list",
            },
        },
        "required": ["product_id"],
    }
    return [
        Tool(
            name="storefront_list_products",
            description="List products, optionally filtered by title and sorted by price",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "Text to look for in product titles",
                    },
                    "sort": {
                        "type": "string",
                        "enum": ["asc", "desc"],
                        "description": "Sort by price (asc or desc)",
                    },
                },
            },
        ),
        Tool(
            name="storefront_reload_catalog",
            description="Fetch the product catalog again (e.g. after a failed load)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_add_to_cart",
            description="Add a product to the cart (limited by available stock)",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": {
                        "type": "string",
                        "description": "Product ID from the product list",
                    },
                    "quantity": {
                        "type": "integer",
                        "description": "Quantity to add (default: 1)",
                        "default": 1,
                    },
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="storefront_decrease_item",
            description="Remove one unit of a product from the cart",
            inputSchema=product_id_schema,
        ),
        Tool(
            name="storefront_remove_from_cart",
            description="Remove a product from the cart entirely",
            inputSchema=product_id_schema,
        ),
        Tool(
            name="storefront_clear_cart",
            description="Remove every product from the cart",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_get_cart",
            description="Get current shopping cart contents",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="storefront_checkout",
            description="Buy the cart contents; stock is checked again before charging",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Customer name"},
                    "email": {"type": "string", "description": "Customer email"},
                    "address": {"type": "string", "description": "Delivery address (optional)"},
                    "download_receipt": {
                        "type": "boolean",
                        "description": "Save the receipt as a JSON file (default: false)",
                        "default": False,
                    },
                },
                "required": ["name", "email"],
            },
        ),
        Tool(
            name="storefront_get_sales",
            description="List receipts of completed purchases",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "storefront_list_products":
            products = await storefront.list_products(
                query=arguments.get("query") or "", sort=arguments.get("sort")
            )

            if not products:
                query = arguments.get("query")
                return _text(f"No products found for: {query}" if query else "No products available")

            result_lines = [f"Found {len(products)} product(s):\n"]
            for i, product in enumerate(products, 1):
                result_lines.append(f"\n{i}. {product.title}")
                result_lines.append(f"   ID: {product.id}")
                result_lines.append(f"   Price: {product.price:.2f}")
                result_lines.append(f"   In stock: {product.stock}")
                if product.description:
                    result_lines.append(f"   {product.description}")

            return _text("\n".join(result_lines))

        elif name == "storefront_reload_catalog":
            products = await storefront.load_catalog()
            return _text(f"✅ Loaded {len(products)} product(s)")

        elif name == "storefront_add_to_cart":
            product_id = arguments["product_id"]
            quantity = int(arguments.get("quantity", 1))

            cart = await storefront.add_to_cart(product_id, quantity)
            return _text(
                f"✅ Added product {product_id} (quantity: {quantity}) to cart\n"
                f"Items in cart: {cart.total_units}"
            )

        elif name == "storefront_decrease_item":
            product_id = arguments["product_id"]
            cart = await storefront.decrease_item(product_id)
            return _text(f"✅ Decreased product {product_id}\n\n{format_cart(cart)}")

        elif name == "storefront_remove_from_cart":
            product_id = arguments["product_id"]
            cart = await storefront.remove_from_cart(product_id)
            return _text(f"✅ Removed product {product_id} from cart\n\n{format_cart(cart)}")

        elif name == "storefront_clear_cart":
            await storefront.clear_cart()
            return _text("✅ Cart cleared")

        elif name == "storefront_get_cart":
            cart = await storefront.view_cart()
            return _text(format_cart(cart))

        elif name == "storefront_checkout":
            customer = Customer(
                name=arguments.get("name"),
                email=arguments.get("email"),
                address=arguments.get("address"),
            )
            presenter = ToolPresenter(
                customer=customer,
                answers=[True, bool(arguments.get("download_receipt", False))],
            )
            result = await storefront.checkout(presenter)
            return _text(format_checkout(result, presenter.render()))

        elif name == "storefront_get_sales":
            receipts = await storefront.sales_history()

            if not receipts:
                return _text("No sales recorded yet")

            result_lines = [f"{len(receipts)} sale(s):\n"]
            for receipt in receipts:
                result_lines.append(
                    f"  - {receipt.transaction_id} {receipt.created_at.isoformat()} "
                    f"{receipt.customer.name}: {receipt.total:.2f}"
                )
            return _text("\n".join(result_lines))

        else:
            return _text(f"Unknown tool: {name}")

    except CatalogUnavailable as e:
        return _text(f"❌ {e}. Try storefront_reload_catalog.")
    except StorefrontError as e:
        return _text(f"❌ {e}")
    except (KeyError, ValueError) as e:
        return _text(f"Error: Invalid arguments: {e}")
    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return _text(f"Error: {str(e)}")


async def main() -> None:
    """Main entry point."""
    global storefront

    storefront = Storefront.from_env()
    await storefront.try_load_catalog()

    logger.info("Starting Storefront MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        storefront.close()


if __name__ == "__main__":
    asyncio.run(main())
