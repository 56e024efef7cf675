"""Shared pytest fixtures and in-memory collaborator fakes for cartflow tests."""

import asyncio
from collections.abc import Sequence

import pytest

from cartflow import (
    CartEntry,
    CartErrors,
    Error,
    Category,
    CollaboratorError,
    DeliveryInfo,
    Product,
    Settings,
    Shortfall,
)
from cartflow import storage as St
from cartflow.cart import CartStore
from cartflow.checkout import CheckoutOrchestrator, OrderReceipt, OrderRequest
from cartflow.inventory import InventoryReport, InventoryValidator
from cartflow.shipping import ScheduleShippingService, ShippingCalculator


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════


class FakeCatalog:
    """Product lookup over a dict. Set `fail` to simulate an outage."""

    def __init__(self, products: Sequence[Product]) -> None:
        self.products = {p.id: p for p in products}
        self.fail = False

    async def get(self, product_id):
        if self.fail:
            raise ConnectionError("catalog down")
        return self.products.get(product_id)


class FakeCartApi:
    """Server cart keyed by product id; rejects quantities above catalog stock."""

    def __init__(self, catalog: FakeCatalog) -> None:
        self.catalog = catalog
        self.quantities: dict[str, int] = {}
        self.fail = False
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("cart service unavailable")

    async def get_items(self):
        self.calls.append("get_items")
        if self.gate is not None:
            await self.gate.wait()
        self._check()
        return [
            CartEntry(self.catalog.products[pid], qty)
            for pid, qty in self.quantities.items()
        ]

    async def put_item(self, product_id, quantity):
        self.calls.append(f"put_item:{product_id}:{quantity}")
        self._check()
        product = self.catalog.products[product_id]
        if quantity > product.stock:
            raise CollaboratorError(
                "STOCK_INSUFFICIENT", "not enough stock", available=product.stock
            )
        self.quantities[product_id] = quantity
        return CartEntry(product, quantity)

    async def delete_item(self, product_id):
        self.calls.append(f"delete_item:{product_id}")
        self._check()
        if product_id not in self.quantities:
            raise CollaboratorError("NOT_FOUND", "no such item")
        del self.quantities[product_id]

    async def delete_all(self):
        self.calls.append("delete_all")
        self._check()
        self.quantities.clear()


class FailingRecordStore:
    """RecordStore whose every call fails, like a full quota."""

    async def load(self, key):
        return Error(CartErrors.storage("loading", OSError("quota exceeded")))

    async def save(self, key, payload):
        return Error(CartErrors.storage("saving", OSError("quota exceeded")))

    async def delete(self, key):
        return Error(CartErrors.storage("deleting", OSError("quota exceeded")))


class FakeInventory:
    """Inventory check against an `available` map; unlisted ids are plentiful."""

    def __init__(self) -> None:
        self.available: dict[str, int] = {}
        self.fail = False
        self.report: object | None = None
        self.requests: list[tuple[CartEntry, ...]] = []
        self.gate: asyncio.Event | None = None

    async def check(self, items):
        self.requests.append(tuple(items))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise asyncio.TimeoutError()
        if self.report is not None:
            return self.report
        shortfalls = tuple(
            Shortfall(e.product, e.quantity, self.available[e.product_id])
            for e in items
            if e.product_id in self.available and e.quantity > self.available[e.product_id]
        )
        return InventoryReport(success=not shortfalls, shortfalls=shortfalls)


class FakeOrders:
    """Order collaborator; `gate` lets tests hold a submission in flight."""

    def __init__(self) -> None:
        self.submitted: list[OrderRequest] = []
        self.fail = False
        self.receipt: object | None = None
        self.gate: asyncio.Event | None = None

    async def submit(self, request):
        self.submitted.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ConnectionError("order service unavailable")
        if self.receipt is not None:
            return self.receipt
        return OrderReceipt(order_id=f"ORD-{len(self.submitted):04d}")


class FailingShipping(ScheduleShippingService):
    """Shipping collaborator whose fee endpoint is down."""

    async def quote(self, items, delivery):
        raise ConnectionError("shipping service unavailable")


# ═══════════════════════════════════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def book():
    return Product(
        id="book-1",
        title="Dế Mèn Phiêu Lưu Ký",
        price=100_000,
        stock=10,
        category=Category.BOOK,
        rush_eligible=True,
        weight=0.5,
    )


@pytest.fixture
def cd():
    return Product(
        id="cd-2",
        title="Trịnh Công Sơn Collection",
        price=200_000,
        stock=10,
        category=Category.CD,
        rush_eligible=False,
        weight=0.3,
    )


@pytest.fixture
def vinyl():
    return Product(
        id="lp-3",
        title="Abbey Road",
        price=350_000,
        stock=3,
        category=Category.LP,
        rush_eligible=True,
        weight=1.2,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Wiring
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def catalog(book, cd, vinyl):
    return FakeCatalog([book, cd, vinyl])


@pytest.fixture
def records():
    return St.MemoryRecordStore()


@pytest.fixture
def local(records, catalog, settings):
    return St.LocalBackend(records, key=settings.local_cart_key, catalog=catalog)


@pytest.fixture
def api(catalog):
    return FakeCartApi(catalog)


@pytest.fixture
def remote(api, catalog):
    return St.RemoteBackend(api, catalog)


@pytest.fixture
def auth():
    return St.AuthState()


@pytest.fixture
def selector(auth, local, remote):
    return St.BackendSelector(auth, local, remote)


@pytest.fixture
def store(selector, settings):
    return CartStore(selector, settings)


@pytest.fixture
def inventory():
    return FakeInventory()


@pytest.fixture
def validator(inventory, store):
    return InventoryValidator(inventory, store)


@pytest.fixture
def shipping(settings):
    return ShippingCalculator(ScheduleShippingService(), settings)


@pytest.fixture
def orders():
    return FakeOrders()


@pytest.fixture
def checkout(store, validator, shipping, orders, settings):
    return CheckoutOrchestrator(store, validator, shipping, orders, settings=settings)


@pytest.fixture
def delivery():
    return DeliveryInfo(
        recipient_name="Nguyễn Văn A",
        phone="0912 345 678",
        city="Hà Nội",
        district="Cầu Giấy",
        address_detail="144 Xuân Thủy",
        email="a@example.com",
    )


@pytest.fixture
def failing_records():
    return FailingRecordStore()


@pytest.fixture
def failing_shipping(settings):
    return ShippingCalculator(FailingShipping(), settings)
