"""
Repositories — simulate the storefront's backend services.

Each service has artificial latency so the demo shows real suspension points.
"""

from dataclasses import dataclass, field, replace
import asyncio

from cartflow import CartEntry, Category, CollaboratorError, Product, Shortfall
from cartflow.checkout import OrderReceipt, OrderRequest, OrderStatus
from cartflow.inventory import InventoryReport
from cartflow.shipping import ScheduleShippingService


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Service (~20ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CatalogService:
    _products: dict[str, Product] = field(default_factory=dict[str, Product])

    def seed(self) -> None:
        self._products = {
            "BOOK-1": Product(
                "BOOK-1", "Dế Mèn Phiêu Lưu Ký", 100_000, 12, Category.BOOK, True, 0.4
            ),
            "CD-2": Product(
                "CD-2", "Trịnh Công Sơn Collection", 200_000, 6, Category.CD, False, 0.2
            ),
            "DVD-3": Product(
                "DVD-3", "Mùi Đu Đủ Xanh", 150_000, 4, Category.DVD, True, 0.3
            ),
            "LP-4": Product("LP-4", "Abbey Road", 650_000, 2, Category.LP, False, 1.4),
        }

    async def get(self, product_id: str) -> Product | None:
        await asyncio.sleep(0.02)
        print(f"      [CatalogService] {product_id}")
        return self._products.get(product_id)

    def product(self, product_id: str) -> Product:
        return self._products[product_id]

    def set_stock(self, product_id: str, stock: int) -> None:
        self._products[product_id] = replace(self._products[product_id], stock=stock)

    def list_all(self) -> list[Product]:
        return list(self._products.values())


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Service (~30ms) — the signed-in user's server cart
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class CartService:
    catalog: "CatalogService"
    _items: dict[str, int] = field(default_factory=dict[str, int])

    async def get_items(self) -> list[CartEntry]:
        await asyncio.sleep(0.03)
        print(f"      [CartService.get] {len(self._items)} items")
        return [CartEntry(self.catalog.product(pid), qty) for pid, qty in self._items.items()]

    async def put_item(self, product_id: str, quantity: int) -> CartEntry:
        await asyncio.sleep(0.03)
        product = self.catalog.product(product_id)
        if quantity > product.stock:
            print(f"      [CartService.put] {product_id} x{quantity}: only {product.stock}")
            raise CollaboratorError(
                "STOCK_INSUFFICIENT",
                f"{product_id}: need {quantity}, have {product.stock}",
                available=product.stock,
            )
        self._items[product_id] = quantity
        print(f"      [CartService.put] {product_id} x{quantity}")
        return CartEntry(product, quantity)

    async def delete_item(self, product_id: str) -> None:
        await asyncio.sleep(0.02)
        if product_id not in self._items:
            raise CollaboratorError("NOT_FOUND", f"{product_id} not in cart")
        del self._items[product_id]
        print(f"      [CartService.delete] {product_id}")

    async def delete_all(self) -> None:
        await asyncio.sleep(0.02)
        self._items.clear()
        print("      [CartService.delete_all]")


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory Service (~35ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class InventoryService:
    catalog: "CatalogService"

    async def check(self, items: list[CartEntry]) -> InventoryReport:
        await asyncio.sleep(0.035)
        shortfalls = []
        for entry in items:
            available = self.catalog.product(entry.product_id).stock
            print(
                f"      [InventoryService] {entry.product_id}: "
                f"need {entry.quantity}, have {available}"
            )
            if entry.quantity > available:
                shortfalls.append(Shortfall(entry.product, entry.quantity, available))
        return InventoryReport(success=not shortfalls, shortfalls=tuple(shortfalls))


# ═══════════════════════════════════════════════════════════════════════════════
# Shipping Service (~40ms)
# ═══════════════════════════════════════════════════════════════════════════════


class ShippingService(ScheduleShippingService):
    async def check_rush(self, city, district, products):
        await asyncio.sleep(0.04)
        answer = await super().check_rush(city, district, products)
        print(f"      [ShippingService.rush] {district}: supported={answer.supported}")
        return answer

    async def quote(self, items, delivery):
        await asyncio.sleep(0.04)
        answer = await super().quote(items, delivery)
        print(
            f"      [ShippingService.quote] regular={answer.regular_fee:,} "
            f"rush={answer.rush_fee:,}"
        )
        return answer


# ═══════════════════════════════════════════════════════════════════════════════
# Order Service (~50ms)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class OrderService:
    _counter: int = 0
    _orders: dict[str, OrderRequest] = field(default_factory=dict[str, OrderRequest])

    async def submit(self, request: OrderRequest) -> OrderReceipt:
        await asyncio.sleep(0.05)
        self._counter += 1
        order_id = f"ORD-{self._counter:04d}"
        self._orders[order_id] = request
        print(f"      [OrderService] {order_id}: {request.cost.total:,} VND")
        return OrderReceipt(order_id, OrderStatus.PENDING)


# ═══════════════════════════════════════════════════════════════════════════════
# Singletons
# ═══════════════════════════════════════════════════════════════════════════════

catalog_service = CatalogService()
cart_service = CartService(catalog_service)
inventory_service = InventoryService(catalog_service)
shipping_service = ShippingService()
order_service = OrderService()


def seed_all() -> None:
    catalog_service.seed()
