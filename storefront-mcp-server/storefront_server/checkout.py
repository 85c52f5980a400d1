"""Checkout workflow: validate, commit, and record a purchase."""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .cart import CartLedger
from .catalog import CatalogStore
from .errors import CheckoutInProgress, InsufficientStock, InvariantViolation
from .models import (
    CartLine,
    CheckoutResult,
    CheckoutStatus,
    Customer,
    Receipt,
    ReceiptLine,
    RejectionReason,
    StockShortage,
)
from .presentation import NoticeKind, Presenter
from .sales import SalesLog, export_receipt

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    COMMITTED = "committed"
    REJECTED = "rejected"


class TransactionClock:
    """Issues transaction IDs that are unique and ordered by creation time.

    IDs come from a nanosecond clock; if the clock stalls or steps back the
    previous value is bumped by one, so IDs never repeat within a process.
    """

    def __init__(self, clock: Callable[[], int] = time.time_ns) -> None:
        self._clock = clock
        self._last = 0

    def next_id(self) -> str:
        now = max(self._clock(), self._last + 1)
        self._last = now
        # zero-padded so string order matches numeric order
        return f"TX{now:020d}"


class CheckoutWorkflow:
    """Runs one transaction at a time: IDLE -> VALIDATING -> COMMITTED | REJECTED -> IDLE."""

    def __init__(
        self,
        catalog: CatalogStore,
        cart: CartLedger,
        sales: SalesLog,
        receipts_dir: Optional[str] = None,
        clock: Optional[TransactionClock] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.catalog = catalog
        self.cart = cart
        self.sales = sales
        if receipts_dir is None:
            receipts_dir = str(Path.home() / "storefront_receipts")
        self.receipts_dir = receipts_dir
        self.clock = clock or TransactionClock()
        self._now = now
        self.state = CheckoutState.IDLE
        self._active = False

    def _reject(self, reason: RejectionReason, **details) -> CheckoutResult:
        self.state = CheckoutState.REJECTED
        logger.warning(f"Checkout rejected: {reason.value}")
        return CheckoutResult(status=CheckoutStatus.REJECTED, reason=reason, **details)

    def find_shortages(self) -> list[StockShortage]:
        """Compare every cart line against live stock."""
        shortages = []
        for line in self.cart.lines:
            product = self.catalog.find_by_id(line.product_id)
            available = product.stock if product else 0
            if line.quantity > available:
                shortages.append(
                    StockShortage(
                        product_id=line.product_id,
                        title=product.title if product else line.snapshot.title,
                        requested=line.quantity,
                        available=available,
                    )
                )
        return shortages

    def build_receipt(self, customer: Customer, lines: list[CartLine]) -> Receipt:
        """Price lines from the live catalog, falling back to the add-time snapshot."""
        items = []
        for line in lines:
            product = self.catalog.find_by_id(line.product_id)
            source = product if product is not None else line.snapshot
            items.append(
                ReceiptLine(
                    product_id=line.product_id,
                    title=source.title,
                    quantity=line.quantity,
                    price=source.price,
                )
            )
        return Receipt(
            transaction_id=self.clock.next_id(),
            created_at=self._now(),
            customer=customer,
            items=tuple(items),
        )

    def submit(self, customer: Customer) -> CheckoutResult:
        """
        Validate the cart and customer against live stock and commit the sale.

        Rejections leave the catalog, cart, and sales log untouched.

        Args:
            customer: Buyer details (name and email required)

        Returns:
            A committed result carrying the receipt, or a rejected result
            carrying the reason
        """
        if self.state is not CheckoutState.IDLE:
            raise CheckoutInProgress()

        try:
            if self.cart.is_empty():
                return self._reject(RejectionReason.EMPTY_CART)

            self.state = CheckoutState.VALIDATING
            missing = customer.missing_fields()
            if missing:
                return self._reject(RejectionReason.MISSING_CUSTOMER_INFO, missing_fields=missing)

            shortages = self.find_shortages()
            if shortages:
                return self._reject(RejectionReason.INSUFFICIENT_STOCK, shortages=shortages)

            receipt = self._commit(customer)
            return CheckoutResult(status=CheckoutStatus.COMMITTED, receipt=receipt)
        finally:
            self.state = CheckoutState.IDLE

    def _commit(self, customer: Customer) -> Receipt:
        lines = self.cart.lines
        receipt = self.build_receipt(customer, lines)

        # sale and emptied cart go out in one write; nothing changes if it fails
        self.cart.clear(also_store={self.sales.key: self.sales.appended(receipt)})
        self.state = CheckoutState.COMMITTED

        for line in lines:
            try:
                self.catalog.decrement_stock(line.product_id, line.quantity)
            except (InsufficientStock, KeyError) as e:
                raise InvariantViolation(f"Stock changed between validation and commit: {e}") from e

        logger.info(
            f"Checkout committed: {receipt.transaction_id}, "
            f"{len(receipt.items)} line(s), total {receipt.total}"
        )
        return receipt

    async def checkout(self, presenter: Presenter, max_attempts: int = 3) -> CheckoutResult:
        """
        Run the interactive checkout against a presenter.

        Declining any prompt before the commit discards the attempt without
        side effects. Missing customer details re-prompt up to max_attempts
        times.

        Raises:
            CheckoutInProgress: If another checkout is awaiting the presenter
        """
        if self._active:
            raise CheckoutInProgress()
        self._active = True
        try:
            return await self._run(presenter, max_attempts)
        finally:
            self._active = False

    async def _run(self, presenter: Presenter, max_attempts: int) -> CheckoutResult:
        if self.cart.is_empty():
            await presenter.notify(NoticeKind.INFO, "Cart is empty", "Add products before checking out.")
            return CheckoutResult(status=CheckoutStatus.REJECTED, reason=RejectionReason.EMPTY_CART)

        summary = "\n".join(
            f"{line.snapshot.title} x{line.quantity} @ {line.snapshot.price:.2f}" for line in self.cart.lines
        )
        if not await presenter.confirm("Your cart", summary, "Pay", "Keep shopping"):
            logger.info("Checkout cancelled at cart review")
            return CheckoutResult(status=CheckoutStatus.CANCELLED)

        result = None
        for _ in range(max_attempts):
            customer = await presenter.prompt_customer()
            if customer is None:
                logger.info("Checkout cancelled at customer form")
                # report the outstanding validation problem, if any
                return result if result is not None else CheckoutResult(status=CheckoutStatus.CANCELLED)

            result = self.submit(customer)
            if result.reason is not RejectionReason.MISSING_CUSTOMER_INFO:
                break
            await presenter.notify(NoticeKind.WARNING, "Missing details", "Name and email are required.")

        if result is None:
            return CheckoutResult(status=CheckoutStatus.CANCELLED)
        if result.reason is RejectionReason.INSUFFICIENT_STOCK:
            details = ", ".join(
                f"{s.title} (requested {s.requested}, available {s.available})" for s in result.shortages
            )
            await presenter.notify(NoticeKind.ERROR, "Insufficient stock", f"Review the cart: {details}")
        if not result.committed:
            return result

        receipt = result.receipt
        download = await presenter.confirm(
            "Purchase complete",
            f"Thank you, {receipt.customer.name}. Transaction ID: {receipt.transaction_id}. "
            f"Total: {receipt.total:.2f}",
            "Download receipt",
            "Close",
        )
        if download:
            try:
                path = export_receipt(receipt, self.receipts_dir)
            except OSError as e:
                logger.warning(f"Receipt export failed for {receipt.transaction_id}: {e}")
                await presenter.notify(NoticeKind.ERROR, "Export failed", f"Could not save the receipt: {e}")
            else:
                result = result.model_copy(update={"exported_to": str(path)})
        return result
