"""
cartflow — cart & checkout reconciliation for a storefront.

    from cartflow import storage as St    # Local / remote cart backends
    from cartflow import cart as C        # Authoritative cart state
    from cartflow import inventory as I   # Live stock gate
    from cartflow import shipping as S    # Rush eligibility, fees
    from cartflow import checkout as Co   # Checkout state machine
"""

from cartflow import storage
from cartflow import cart
from cartflow import inventory
from cartflow import shipping
from cartflow import checkout
from cartflow.settings import Settings
from cartflow._types import (
    Result,
    Ok,
    Error,
    ProductId,
    Category,
    Product,
    CatalogLookup,
    CartEntry,
    Shortfall,
    DeliveryInfo,
    CartErrorKind,
    NextAction,
    CartError,
    CartErrors,
    CollaboratorError,
)

__version__ = "0.1.0"

__all__ = (
    "storage",
    "cart",
    "inventory",
    "shipping",
    "checkout",
    "Settings",
    "Result",
    "Ok",
    "Error",
    "ProductId",
    "Category",
    "Product",
    "CatalogLookup",
    "CartEntry",
    "Shortfall",
    "DeliveryInfo",
    "CartErrorKind",
    "NextAction",
    "CartError",
    "CartErrors",
    "CollaboratorError",
)
