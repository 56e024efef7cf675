"""
Checkout types — steps, cost summary, order snapshots and the order gateway.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from cartflow._types import CartEntry, DeliveryInfo, ProductId


# ═══════════════════════════════════════════════════════════════════════════════
# State Machine
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutStep(Enum):
    """
    Lifecycle:
        COLLECTING_DELIVERY → SELECTING_PAYMENT → CONFIRMING → PLACED

    back() walks the chain in reverse; backing out of COLLECTING_DELIVERY
    lands in EXITED (returned to cart).
    """

    COLLECTING_DELIVERY = auto()
    SELECTING_PAYMENT = auto()
    CONFIRMING = auto()
    PLACED = auto()
    EXITED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutStep.PLACED, CheckoutStep.EXITED)


class PaymentMethod(Enum):
    VNPAY = "vnpay"


# ═══════════════════════════════════════════════════════════════════════════════
# Cost Summary
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CostSummary:
    """
    Figures shown on the confirmation view.

    subtotal is tax-inclusive; vat is the part of it that is tax.
    total = subtotal + regular_fee + rush_fee.
    """

    subtotal: int
    regular_fee: int
    rush_fee: int
    vat: int
    total: int
    quote_confirmed: bool = True

    @property
    def shipping_fee(self) -> int:
        return self.regular_fee + self.rush_fee


# ═══════════════════════════════════════════════════════════════════════════════
# Order
# ═══════════════════════════════════════════════════════════════════════════════


class OrderStatus(Enum):
    PENDING = "pending"
    PENDING_APPROVAL = "pending_approval"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    REJECTED = "rejected"
    APPROVED = "approved"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class OrderLine:
    """Line item captured at submission time."""

    product_id: ProductId
    title: str
    unit_price: int
    quantity: int

    @classmethod
    def from_entry(cls, entry: CartEntry) -> OrderLine:
        return cls(entry.product_id, entry.product.title, entry.product.price, entry.quantity)

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """What is sent to the order collaborator."""

    lines: tuple[OrderLine, ...]
    delivery: DeliveryInfo
    payment_method: PaymentMethod
    cost: CostSummary


@dataclass(frozen=True, slots=True)
class OrderReceipt:
    """Collaborator answer: the created order id and its initial status."""

    order_id: str
    status: OrderStatus = OrderStatus.PENDING


@dataclass(frozen=True, slots=True)
class Order:
    """Placed order. Read-only after creation."""

    id: str
    lines: tuple[OrderLine, ...]
    delivery: DeliveryInfo
    payment_method: PaymentMethod
    cost: CostSummary
    status: OrderStatus = OrderStatus.PENDING

    @property
    def product_ids(self) -> tuple[ProductId, ...]:
        return tuple(line.product_id for line in self.lines)

    @property
    def subtotal(self) -> int:
        return self.cost.subtotal

    @property
    def shipping_fee(self) -> int:
        return self.cost.shipping_fee

    @property
    def vat(self) -> int:
        return self.cost.vat

    @property
    def total(self) -> int:
        return self.cost.total


class OrderGateway(Protocol):
    """External order submission. Raises on network/server failure."""

    async def submit(self, request: OrderRequest) -> OrderReceipt: ...


__all__ = (
    "CheckoutStep",
    "PaymentMethod",
    "CostSummary",
    "OrderStatus",
    "OrderLine",
    "OrderRequest",
    "OrderReceipt",
    "Order",
    "OrderGateway",
)
