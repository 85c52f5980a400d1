"""Storefront errors."""

from typing import Optional


class StorefrontError(Exception):
    """Base class for recoverable storefront failures."""


class CatalogUnavailable(StorefrontError):
    """The product catalog could not be fetched or parsed."""

    def __init__(self, source: str, cause: Optional[BaseException] = None) -> None:
        self.source = source
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not load products from {source}{detail}")


class ProductNotFound(StorefrontError):
    """A referenced product ID is not in the catalog."""

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStock(StorefrontError):
    """The requested quantity exceeds the live stock."""

    def __init__(self, product_id: str, requested: int, remaining: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.remaining = remaining
        super().__init__(
            f"Insufficient stock for {product_id}: requested {requested}, only {remaining} left"
        )


class CorruptPersistedState(StorefrontError):
    """A stored payload could not be decoded."""

    def __init__(self, key: str, cause: Optional[BaseException] = None) -> None:
        self.key = key
        self.cause = cause
        super().__init__(f"Corrupt persisted state under {key!r}: {cause}")


class CheckoutInProgress(StorefrontError):
    """A checkout was started while another one is still awaiting input."""

    def __init__(self) -> None:
        super().__init__("A checkout is already in progress")


class InvariantViolation(RuntimeError):
    """Internal consistency was broken; not recoverable."""
