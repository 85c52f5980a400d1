"""Storefront service wiring the catalog, cart, checkout, and sales log."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from .cart import CartLedger
from .catalog import CatalogStore
from .checkout import CheckoutWorkflow, TransactionClock
from .errors import CatalogUnavailable
from .models import CartView, CheckoutResult, Product, Receipt
from .presentation import NoticeKind, Presenter
from .sales import SalesLog
from .storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class Storefront:
    """Entry point for every shopper operation.

    Operations are serialized behind one lock, so an operation that is
    waiting on the presenter (checkout) blocks later ones until it finishes.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        storage: KeyValueStore,
        receipts_dir: Optional[str] = None,
        clock: Optional[TransactionClock] = None,
    ) -> None:
        self.catalog = catalog
        self.storage = storage
        self.cart = CartLedger(catalog, storage)
        self.sales = SalesLog(storage)
        self.checkout_workflow = CheckoutWorkflow(
            catalog, self.cart, self.sales, receipts_dir=receipts_dir, clock=clock
        )
        self._lock = asyncio.Lock()

    @classmethod
    def from_env(cls, client: Optional[httpx.Client] = None) -> "Storefront":
        """Build a storefront from STOREFRONT_* environment variables."""
        catalog_source = os.environ.get("STOREFRONT_CATALOG_URL", "products.json")
        state_file = os.environ.get("STOREFRONT_STATE_FILE")
        receipts_dir = os.environ.get("STOREFRONT_RECEIPTS_DIR", str(Path.home() / "storefront_receipts"))

        logger.info(f"Catalog source: {catalog_source}")
        logger.info(f"Receipts directory: {receipts_dir}")
        return cls(
            CatalogStore(catalog_source, client=client),
            JsonFileStore(state_file),
            receipts_dir=receipts_dir,
        )

    async def load_catalog(self) -> list[Product]:
        """Fetch the catalog; raises CatalogUnavailable and leaves it empty on failure."""
        async with self._lock:
            return self.catalog.load()

    async def try_load_catalog(self, presenter: Optional[Presenter] = None) -> bool:
        """Fetch the catalog, reporting a failure to the presenter instead of raising."""
        try:
            await self.load_catalog()
        except CatalogUnavailable as e:
            logger.warning(f"Continuing with an empty catalog: {e}")
            if presenter is not None:
                await presenter.notify(NoticeKind.ERROR, "Error", "Could not load products.")
            return False
        return True

    async def list_products(self, query: str = "", sort: Optional[str] = None) -> list[Product]:
        async with self._lock:
            return [p.model_copy() for p in self.catalog.search(query, sort)]

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> CartView:
        async with self._lock:
            self.cart.add_item(product_id, quantity)
            return self.cart.view()

    async def decrease_item(self, product_id: str) -> CartView:
        async with self._lock:
            self.cart.decrease_item(product_id)
            return self.cart.view()

    async def remove_from_cart(self, product_id: str) -> CartView:
        async with self._lock:
            self.cart.remove_item(product_id)
            return self.cart.view()

    async def clear_cart(self) -> CartView:
        async with self._lock:
            self.cart.clear()
            return self.cart.view()

    async def view_cart(self) -> CartView:
        async with self._lock:
            return self.cart.view()

    async def checkout(self, presenter: Presenter) -> CheckoutResult:
        """Run the interactive checkout; other operations wait until it returns."""
        async with self._lock:
            return await self.checkout_workflow.checkout(presenter)

    async def sales_history(self) -> list[Receipt]:
        async with self._lock:
            return self.sales.all()

    def close(self) -> None:
        self.catalog.close()
