"""Product catalog store."""

import json
import logging
from pathlib import Path
from typing import Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from .errors import CatalogUnavailable, InsufficientStock
from .models import Product

logger = logging.getLogger(__name__)

_products_adapter = TypeAdapter(list[Product])

SORT_ORDERS = ("asc", "desc")


class CatalogStore:
    """Holds the product list fetched from an external catalog source."""

    def __init__(self, source: str, client: Optional[httpx.Client] = None) -> None:
        """
        Initialize the catalog store.

        Args:
            source: http(s) URL of the product list, or a local JSON file path
            client: HTTP client to fetch with (created on demand for URL sources)
        """
        self.source = source
        self._client = client
        self._owns_client = client is None
        self.products: list[Product] = []

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=30.0, follow_redirects=True)
        return self._client

    def _is_remote(self) -> bool:
        return self.source.startswith(("http://", "https://"))

    def _fetch(self) -> bytes:
        if self._is_remote():
            response = self.client.get(self.source, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.content
        return Path(self.source).read_bytes()

    def load(self) -> list[Product]:
        """
        Fetch and replace the product list.

        Returns:
            The loaded products

        Raises:
            CatalogUnavailable: If the source cannot be fetched or parsed; the
                store is left empty
        """
        self.products = []
        logger.info(f"Loading catalog from {self.source}")
        try:
            products = _products_adapter.validate_json(self._fetch())
        except (httpx.HTTPError, OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Catalog load failed: {e}")
            raise CatalogUnavailable(self.source, e) from e

        seen: set[str] = set()
        for product in products:
            if product.id in seen:
                logger.error(f"Catalog load failed: duplicate product id {product.id}")
                raise CatalogUnavailable(self.source, ValueError(f"duplicate product id {product.id}"))
            seen.add(product.id)

        self.products = products
        logger.info(f"Loaded {len(products)} product(s)")
        return self.products

    def find_by_id(self, product_id: str) -> Optional[Product]:
        """Return the product with the given ID, or None."""
        for product in self.products:
            if product.id == product_id:
                return product
        return None

    def decrement_stock(self, product_id: str, quantity: int) -> Product:
        """
        Remove sold units from a product's stock.

        Args:
            product_id: Product to decrement
            quantity: Units sold

        Returns:
            The updated product

        Raises:
            KeyError: If the product is not in the catalog
            InsufficientStock: If quantity exceeds the current stock
        """
        product = self.find_by_id(product_id)
        if product is None:
            raise KeyError(product_id)
        if quantity > product.stock:
            raise InsufficientStock(product_id, quantity, product.stock)
        product.stock -= quantity
        return product

    def search(self, query: str = "", sort: Optional[str] = None) -> list[Product]:
        """
        Filter products by title and optionally order them by price.

        Args:
            query: Case-insensitive substring to match against titles
            sort: "asc" or "desc" to order by price, None to keep catalog order
        """
        if sort is not None and sort not in SORT_ORDERS:
            raise ValueError(f"Sort must be one of {', '.join(SORT_ORDERS)}")

        needle = query.strip().lower()
        matches = [p for p in self.products if needle in p.title.lower()]
        if sort:
            matches.sort(key=lambda p: p.price, reverse=sort == "desc")
        return matches

    def close(self) -> None:
        """Close the HTTP client if this store created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
