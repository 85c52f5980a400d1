"""Storefront MCP Server: catalog, cart, and checkout."""

from .cart import CartLedger
from .catalog import CatalogStore
from .checkout import CheckoutState, CheckoutWorkflow, TransactionClock
from .errors import (
    CatalogUnavailable,
    CheckoutInProgress,
    CorruptPersistedState,
    InsufficientStock,
    InvariantViolation,
    ProductNotFound,
    StorefrontError,
)
from .models import (
    CartLine,
    CartSnapshot,
    CartView,
    CheckoutResult,
    CheckoutStatus,
    Customer,
    Product,
    Receipt,
    ReceiptLine,
    RejectionReason,
    StockShortage,
)
from .presentation import NoticeKind, Presenter, ToolPresenter
from .sales import SalesLog, export_receipt
from .storage import JsonFileStore, KeyValueStore, MemoryStore
from .storefront import Storefront

__version__ = "0.1.0"
