"""HTTP server for the storefront."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .errors import CatalogUnavailable, CheckoutInProgress, InsufficientStock, ProductNotFound
from .models import Customer
from .presentation import ToolPresenter
from .storefront import Storefront

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("storefront-http-server")

# Global state
storefront: Optional[Storefront] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global storefront

    # Startup
    logger.info("Starting Storefront HTTP Server...")
    if storefront is None:
        storefront = Storefront.from_env()
    await storefront.try_load_catalog()

    yield

    # Shutdown
    logger.info("Shutting down Storefront HTTP Server...")
    storefront.close()


app = FastAPI(
    title="Storefront MCP Server",
    description="HTTP API for browsing products, managing the cart, and checking out",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1


class ProductRequest(BaseModel):
    product_id: str


class CheckoutRequest(BaseModel):
    name: str = ""
    email: str = ""
    address: str = ""
    download_receipt: bool = False


def _cart_error(e: Exception) -> HTTPException:
    """Map a cart or catalog failure to an HTTP error."""
    if isinstance(e, ProductNotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, InsufficientStock):
        return HTTPException(
            status_code=409,
            detail={"message": str(e), "product_id": e.product_id, "remaining": e.remaining},
        )
    if isinstance(e, CheckoutInProgress):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, CatalogUnavailable):
        return HTTPException(status_code=503, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Unexpected error: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=str(e))


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Storefront MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for browsing products, managing the cart, and checking out",
        "mcp_compatible": True,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "products": {"list": "GET /products", "reload": "POST /products/reload"},
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "decrease": "POST /cart/decrease",
                "remove": "POST /cart/remove",
                "clear": "POST /cart/clear",
            },
            "checkout": "POST /checkout",
            "sales": "GET /sales",
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "catalog_loaded": bool(storefront and storefront.catalog.products),
    }


# Product endpoints
@app.get("/products")
async def list_products(query: str = "", sort: Optional[str] = None):
    """List products, filtered by title and sorted by price."""
    try:
        products = await storefront.list_products(query=query, sort=sort)
        return {
            "count": len(products),
            "products": [product.model_dump(mode="json") for product in products],
        }
    except Exception as e:
        raise _cart_error(e)


@app.post("/products/reload")
async def reload_products():
    """Fetch the catalog again."""
    try:
        products = await storefront.load_catalog()
        return {"success": True, "count": len(products)}
    except Exception as e:
        raise _cart_error(e)


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get current shopping cart."""
    cart = await storefront.view_cart()
    return cart.model_dump(mode="json", by_alias=True)


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add a product to the cart."""
    try:
        cart = await storefront.add_to_cart(request.product_id, request.quantity)
        return {
            "success": True,
            "message": f"Added product {request.product_id} (quantity: {request.quantity}) to cart",
            "cart": cart.model_dump(mode="json", by_alias=True),
        }
    except Exception as e:
        raise _cart_error(e)


@app.post("/cart/decrease")
async def decrease_item(request: ProductRequest):
    """Remove one unit of a product from the cart."""
    cart = await storefront.decrease_item(request.product_id)
    return {"success": True, "cart": cart.model_dump(mode="json", by_alias=True)}


@app.post("/cart/remove")
async def remove_from_cart(request: ProductRequest):
    """Remove a product from the cart."""
    cart = await storefront.remove_from_cart(request.product_id)
    return {
        "success": True,
        "message": f"Removed product {request.product_id} from cart",
        "cart": cart.model_dump(mode="json", by_alias=True),
    }


@app.post("/cart/clear")
async def clear_cart():
    """Remove every product from the cart."""
    cart = await storefront.clear_cart()
    return {"success": True, "cart": cart.model_dump(mode="json", by_alias=True)}


# Checkout endpoints
@app.post("/checkout")
async def checkout(request: CheckoutRequest):
    """Validate the cart against live stock and record the purchase."""
    try:
        presenter = ToolPresenter(
            customer=Customer(name=request.name, email=request.email, address=request.address),
            answers=[True, request.download_receipt],
        )
        result = await storefront.checkout(presenter)
        return {
            "success": result.committed,
            **result.model_dump(mode="json", by_alias=True),
            "notices": [
                {"kind": n.kind.value, "title": n.title, "message": n.message} for n in presenter.notices
            ],
        }
    except Exception as e:
        raise _cart_error(e)


@app.get("/sales")
async def get_sales():
    """Get receipts of completed purchases."""
    receipts = await storefront.sales_history()
    return {
        "count": len(receipts),
        "sales": [receipt.model_dump(mode="json", by_alias=True) for receipt in receipts],
    }


def run_http_server(host: str = "0.0.0.0", port: int = 8000, log_level: str = "info"):
    """Run the HTTP server."""
    import uvicorn

    uvicorn.run(app, host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    run_http_server()
