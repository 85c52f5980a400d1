"""Shared fixtures for storefront tests."""

import json
from typing import Optional

import httpx
import pytest

from storefront_server.cart import CartLedger
from storefront_server.catalog import CatalogStore
from storefront_server.checkout import CheckoutWorkflow, TransactionClock
from storefront_server.models import Customer
from storefront_server.presentation import Notice, NoticeKind
from storefront_server.sales import SalesLog
from storefront_server.storage import MemoryStore

CATALOG_URL = "https://shop.test/products.json"

PRODUCTS = [
    {
        "id": "p1",
        "title": "Widget",
        "description": "Everyday widget",
        "price": 10.0,
        "image": "img/widget.jpg",
        "stock": 5,
    },
    {
        "id": "p2",
        "title": "Gadget",
        "description": "Two-mode gadget",
        "price": 24.5,
        "image": "img/gadget.jpg",
        "stock": 3,
    },
    {
        "id": "p3",
        "title": "Gizmo",
        "description": "Limited-run gizmo",
        "price": 7.25,
        "image": "img/gizmo.jpg",
        "stock": 1,
    },
]


def catalog_client(payload=None, status_code: int = 200) -> httpx.Client:
    """HTTP client whose every request returns the given catalog payload."""
    body = json.dumps(PRODUCTS if payload is None else payload)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, text=body, headers={"Content-Type": "application/json"})

    return httpx.Client(transport=httpx.MockTransport(handler))


class ScriptedPresenter:
    """Non-interactive presenter returning fixed answers."""

    def __init__(self, customers=(), answers=()) -> None:
        self.customers = list(customers)
        self.answers = list(answers)
        self.notices: list[Notice] = []
        self.confirmations: list[tuple[str, str]] = []
        self.prompts = 0

    async def notify(self, kind: NoticeKind, title: str, message: str) -> None:
        self.notices.append(Notice(kind, title, message))

    async def confirm(self, title: str, body: str, confirm_label: str, cancel_label: str) -> bool:
        self.confirmations.append((title, confirm_label))
        return self.answers.pop(0) if self.answers else False

    async def prompt_customer(self) -> Optional[Customer]:
        self.prompts += 1
        return self.customers.pop(0) if self.customers else None


class FailingStore(MemoryStore):
    """Memory store whose writes fail once armed."""

    def __init__(self, data=None) -> None:
        super().__init__(data)
        self.fail = False

    def set_many(self, values: dict[str, str]) -> None:
        if self.fail:
            raise OSError("disk full")
        super().set_many(values)


class StepClock:
    """Nanosecond clock that advances by a fixed step on every read."""

    def __init__(self, start: int = 1_700_000_000_000_000_000, step: int = 1000) -> None:
        self.value = start
        self.step = step

    def __call__(self) -> int:
        self.value += self.step
        return self.value


@pytest.fixture
def storage() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def catalog() -> CatalogStore:
    store = CatalogStore(CATALOG_URL, client=catalog_client())
    store.load()
    return store


@pytest.fixture
def cart(catalog: CatalogStore, storage: MemoryStore) -> CartLedger:
    return CartLedger(catalog, storage)


@pytest.fixture
def sales(storage: MemoryStore) -> SalesLog:
    return SalesLog(storage)


@pytest.fixture
def workflow(catalog, cart, sales, tmp_path) -> CheckoutWorkflow:
    return CheckoutWorkflow(
        catalog,
        cart,
        sales,
        receipts_dir=str(tmp_path / "receipts"),
        clock=TransactionClock(StepClock()),
    )


@pytest.fixture
def customer() -> Customer:
    return Customer(name="Ada Lovelace", email="ada@example.com", address="12 Analytical St")
