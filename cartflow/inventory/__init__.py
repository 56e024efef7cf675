"""
Inventory — live stock validation with cart self-healing.

    from cartflow import inventory as I

    validator = I.InventoryValidator(gateway, store)

    result = await validator.check(store.selected_entries())
    result.success        # False → shortfalls reported, cart clamped
    result.shortfalls     # (Shortfall(product, requested, available), ...)
"""

from cartflow.inventory._types import (
    InventoryReport,
    InventoryGateway,
    InventoryCheckResult,
)
from cartflow.inventory._validator import InventoryValidator

__all__ = (
    "InventoryReport",
    "InventoryGateway",
    "InventoryCheckResult",
    "InventoryValidator",
)
