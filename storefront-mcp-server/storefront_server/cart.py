"""Cart ledger with write-through persistence."""

import logging
from decimal import Decimal
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError

from .catalog import CatalogStore
from .errors import CorruptPersistedState, InsufficientStock, ProductNotFound
from .models import CartLine, CartSnapshot, CartView
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CART_KEY = "pf_cart"

_lines_adapter = TypeAdapter(list[CartLine])


class CartLedger:
    """Owns the cart lines and persists them after every mutation.

    Quantities are checked against the catalog's live stock on every add;
    the ledger never changes stock itself.
    """

    def __init__(self, catalog: CatalogStore, storage: KeyValueStore, key: str = CART_KEY) -> None:
        self.catalog = catalog
        self.storage = storage
        self.key = key
        self._lines: dict[str, CartLine] = self._hydrate()

    def _hydrate(self) -> dict[str, CartLine]:
        """Load persisted lines; a missing or corrupt payload yields an empty cart."""
        try:
            data = self.storage.load_json(self.key)
            if data is None:
                return {}
            lines = _lines_adapter.validate_python(data)
            if len({line.product_id for line in lines}) != len(lines):
                raise ValueError("duplicate product ids")
        except (CorruptPersistedState, ValidationError, ValueError) as e:
            logger.warning(f"Discarding corrupt cart state under {self.key!r}: {e}")
            return {}

        logger.info(f"Restored cart with {len(lines)} line(s)")
        return {line.product_id: line for line in lines}

    def _replace(self, lines: dict[str, CartLine], also_store: Optional[dict[str, Any]] = None) -> None:
        """Persist the new lines, plus any extra records, in one write; then adopt them.

        If the write fails the in-memory cart is left as it was.
        """
        records = {self.key: self._record(lines)}
        records.update(also_store or {})
        self.storage.save_json_many(records)
        self._lines = lines

    @staticmethod
    def _record(lines: dict[str, CartLine]) -> list[dict]:
        return [line.model_dump(mode="json", by_alias=True) for line in lines.values()]

    def to_record(self) -> list[dict]:
        """Serialize the lines in the persisted record layout."""
        return self._record(self._lines)

    @property
    def lines(self) -> list[CartLine]:
        """Cart lines in insertion order."""
        return list(self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def get(self, product_id: str) -> Optional[CartLine]:
        return self._lines.get(product_id)

    def add_item(self, product_id: str, quantity: int = 1) -> CartLine:
        """
        Add units of a product to the cart.

        Args:
            product_id: Catalog product ID
            quantity: Units to add (default: 1)

        Returns:
            The updated cart line

        Raises:
            ValueError: If quantity is not positive
            ProductNotFound: If the product is not in the catalog
            InsufficientStock: If the resulting quantity exceeds stock
        """
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        product = self.catalog.find_by_id(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        line = self._lines.get(product_id)
        new_quantity = (line.quantity if line else 0) + quantity
        if new_quantity > product.stock:
            raise InsufficientStock(product_id, new_quantity, product.stock)

        if line is None:
            line = CartLine(
                product_id=product_id,
                quantity=new_quantity,
                snapshot=CartSnapshot(title=product.title, price=product.price),
            )
        else:
            line = line.model_copy(update={"quantity": new_quantity})

        self._replace({**self._lines, product_id: line})
        logger.info(f"Cart: {product_id} x{new_quantity}")
        return line

    def decrease_item(self, product_id: str) -> Optional[CartLine]:
        """
        Remove one unit of a product; the line is dropped when it reaches zero.

        Returns:
            The remaining line, or None if it was removed or never present
        """
        line = self._lines.get(product_id)
        if line is None:
            return None

        remaining = max(0, line.quantity - 1)
        lines = dict(self._lines)
        if remaining == 0:
            del lines[product_id]
        else:
            lines[product_id] = line.model_copy(update={"quantity": remaining})

        self._replace(lines)
        return self._lines.get(product_id)

    def remove_item(self, product_id: str) -> None:
        """Remove a product's line regardless of its quantity."""
        self._replace({pid: line for pid, line in self._lines.items() if pid != product_id})

    def clear(self, also_store: Optional[dict[str, Any]] = None) -> None:
        """
        Remove all lines.

        Args:
            also_store: Extra JSON records written in the same storage write
        """
        self._replace({}, also_store)

    def total_units(self) -> int:
        """Sum of all line quantities."""
        return sum(line.quantity for line in self._lines.values())

    def view(self) -> CartView:
        return CartView(
            lines=[line.model_copy(deep=True) for line in self._lines.values()],
            total_units=self.total_units(),
            estimated_total=sum(
                (line.snapshot.price * line.quantity for line in self._lines.values()),
                Decimal("0"),
            ),
        )
