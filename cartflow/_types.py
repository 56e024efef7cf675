"""
Core types for cartflow.

Re-exports from kungfu + the value objects every subsystem shares:
product snapshots, cart entries, delivery info and the error taxonomy.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Protocol

# Re-export from kungfu
from kungfu import Result, Ok, Error

# ═══════════════════════════════════════════════════════════════════════════════
# Product Snapshot
# ═══════════════════════════════════════════════════════════════════════════════

type ProductId = str


class Category(Enum):
    BOOK = "book"
    CD = "cd"
    DVD = "dvd"
    LP = "lp"


@dataclass(frozen=True, slots=True)
class Product:
    """
    Snapshot of catalog data at the time of last refresh.

    The cart never owns product master data. Prices are VND and tax-inclusive.
    """

    id: ProductId
    title: str
    price: int
    stock: int
    category: Category = Category.BOOK
    rush_eligible: bool = False
    weight: float = 0.5  # kg


class CatalogLookup(Protocol):
    """Resolves a product id to its current snapshot. None if delisted."""

    async def get(self, product_id: ProductId) -> Product | None: ...


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Entry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartEntry:
    """A (product, quantity) pair. Quantity is always >= 1."""

    product: Product
    quantity: int

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError(
                f"CartEntry quantity must be >= 1, got {self.quantity} for {self.product.id}"
            )

    @property
    def product_id(self) -> ProductId:
        return self.product.id

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity


@dataclass(frozen=True, slots=True)
class Shortfall:
    """Deficit between requested and available stock for one product."""

    product: Product
    requested: int
    available: int

    @property
    def product_id(self) -> ProductId:
        return self.product.id

    def describe(self) -> str:
        return (
            f"'{self.product.title}': requested {self.requested}, "
            f"only {max(self.available, 0)} available"
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Delivery Info
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class DeliveryInfo:
    recipient_name: str = ""
    phone: str = ""
    city: str = ""
    district: str = ""
    address_detail: str = ""
    email: str | None = None
    is_rush_order: bool = False
    delivery_time: str | None = None
    instructions: str | None = None

    def with_rush(self, is_rush_order: bool) -> DeliveryInfo:
        return replace(self, is_rush_order=is_rush_order)


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class CartErrorKind(Enum):
    """Kinds of cart/checkout errors."""

    VALIDATION = auto()  # Malformed delivery fields, never reaches a backend
    STOCK_INSUFFICIENT = auto()  # Backend-reported shortfall
    UNAVAILABLE = auto()  # Network/server failure of a collaborator
    STORAGE = auto()  # Local persistence failure or corrupt record
    INVALID_RESPONSE = auto()  # Collaborator answered with an unusable shape
    CONFLICT = auto()  # State changed under the caller (e.g. totals moved)
    DISCARDED = auto()  # Response arrived for a state nobody is interested in


class NextAction(Enum):
    """What the user can do about an error."""

    NONE = auto()
    FIX_FIELDS = auto()
    ADJUST_QUANTITY = auto()
    RETRY = auto()
    RETURN_TO_CART = auto()


@dataclass(frozen=True)
class CartError:
    """
    Cart/checkout error value.

    Note: carried inside Error(...) results, never raised by the core.
    """

    kind: CartErrorKind
    message: str
    action: NextAction = NextAction.RETRY
    shortfalls: tuple[Shortfall, ...] = ()
    field_errors: dict[str, str] = field(default_factory=dict[str, str])
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def is_retryable(self) -> bool:
        return self.action is NextAction.RETRY


class CartErrors:
    @staticmethod
    def validation(field_errors: dict[str, str]) -> CartError:
        return CartError(
            CartErrorKind.VALIDATION,
            "Please fill in all required fields correctly",
            NextAction.FIX_FIELDS,
            field_errors=dict(field_errors),
        )

    @staticmethod
    def bad_quantity(quantity: int) -> CartError:
        return CartError(
            CartErrorKind.VALIDATION,
            f"Quantity must be at least 1, got {quantity}",
            NextAction.ADJUST_QUANTITY,
            field_errors={"quantity": "Quantity must be at least 1"},
        )

    @staticmethod
    def stock(shortfalls: Sequence[Shortfall]) -> CartError:
        details = "; ".join(s.describe() for s in shortfalls)
        return CartError(
            CartErrorKind.STOCK_INSUFFICIENT,
            f"Not enough stock: {details}. Please adjust the quantity.",
            NextAction.ADJUST_QUANTITY,
            shortfalls=tuple(shortfalls),
        )

    @staticmethod
    def unavailable(what: str, cause: Exception | None = None) -> CartError:
        reason = f": {cause}" if cause is not None else ""
        return CartError(
            CartErrorKind.UNAVAILABLE,
            f"{what} failed{reason}. Please try again.",
            NextAction.RETRY,
            cause=cause,
        )

    @staticmethod
    def storage(what: str, cause: Exception | None = None) -> CartError:
        reason = f": {cause}" if cause is not None else ""
        return CartError(
            CartErrorKind.STORAGE,
            f"Could not save your cart ({what}{reason}). Please try again.",
            NextAction.RETRY,
            cause=cause,
        )

    @staticmethod
    def invalid_response(what: str) -> CartError:
        return CartError(
            CartErrorKind.INVALID_RESPONSE,
            f"{what} returned an unexpected response. Please try again.",
            NextAction.RETRY,
        )

    @staticmethod
    def conflict(message: str, action: NextAction = NextAction.RETRY) -> CartError:
        return CartError(CartErrorKind.CONFLICT, message, action)

    @staticmethod
    def empty_selection() -> CartError:
        return CartError(
            CartErrorKind.CONFLICT,
            "No items selected for checkout. Return to the cart to choose items.",
            NextAction.RETURN_TO_CART,
        )

    @staticmethod
    def discarded(what: str) -> CartError:
        return CartError(
            CartErrorKind.DISCARDED,
            f"{what} finished after the session changed; result ignored.",
            NextAction.NONE,
        )


class CollaboratorError(Exception):
    """
    Raised by collaborator adapters (remote cart API, inventory, orders).

    code "STOCK_INSUFFICIENT" carries the latest known available quantity.
    code "NOT_FOUND" on removals is treated as success.
    """

    def __init__(self, code: str, message: str, available: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.available = available


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    # Products
    "ProductId",
    "Category",
    "Product",
    "CatalogLookup",
    # Cart
    "CartEntry",
    "Shortfall",
    # Delivery
    "DeliveryInfo",
    # Errors
    "CartErrorKind",
    "NextAction",
    "CartError",
    "CartErrors",
    "CollaboratorError",
)
