"""
Cart — authoritative cart state, selection, and derived totals.

    from cartflow import cart as C

    store = C.CartStore(selector)
    await store.reload()
    await store.add_item(book, 2)      # write-through, then full reload

    store.select_all()
    store.selected_total               # VAT-inclusive
    store.selected_vat                 # total - total / 1.1

    report = await store.switch_session(C.MergePolicy.UNION)
"""

from cartflow.cart._pricing import VAT_DIVISOR, subtotal_of, vat_of, pre_tax_of
from cartflow.cart._types import (
    InventoryStatus,
    classify_stock,
    MergePolicy,
    MergeReport,
)
from cartflow.cart._store import CartState, CartStore

__all__ = (
    # Pricing
    "VAT_DIVISOR",
    "subtotal_of",
    "vat_of",
    "pre_tax_of",
    # Types
    "InventoryStatus",
    "classify_stock",
    "MergePolicy",
    "MergeReport",
    # Store
    "CartState",
    "CartStore",
)
