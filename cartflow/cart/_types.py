"""
Cart types — inventory status, session merge policy and report.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cartflow._types import CartError, ProductId
from cartflow.storage import BackendKind


# ═══════════════════════════════════════════════════════════════════════════════
# Inventory Status
# ═══════════════════════════════════════════════════════════════════════════════


class InventoryStatus(Enum):
    """Per-entry stock classification against the cached snapshot."""

    OUT_OF_STOCK = "out_of_stock"
    INSUFFICIENT = "insufficient"  # requested > available
    LOW_STOCK = "low_stock"  # available <= threshold
    AVAILABLE = "available"

    @property
    def is_issue(self) -> bool:
        return self in (InventoryStatus.OUT_OF_STOCK, InventoryStatus.INSUFFICIENT)


def classify_stock(requested: int, available: int, low_threshold: int = 5) -> InventoryStatus:
    if available <= 0:
        return InventoryStatus.OUT_OF_STOCK
    if requested > available:
        return InventoryStatus.INSUFFICIENT
    if available <= low_threshold:
        return InventoryStatus.LOW_STOCK
    return InventoryStatus.AVAILABLE


# ═══════════════════════════════════════════════════════════════════════════════
# Session Merge
# ═══════════════════════════════════════════════════════════════════════════════


class MergePolicy(Enum):
    """
    What happens to the anonymous cart when a user signs in.

    DISCARD: leave the local record alone; the remote cart is shown as-is.
             Local items are orphaned (still on the device, back after logout).
    UNION: copy every local entry to the remote cart, keeping the larger
           quantity; the local record is cleared once merged.
    REMOTE_WINS: copy only products the remote cart does not have yet.
    """

    DISCARD = "discard"
    UNION = "union"
    REMOTE_WINS = "remote_wins"

    @classmethod
    def parse(cls, value: str | MergePolicy) -> MergePolicy:
        if isinstance(value, MergePolicy):
            return value
        return cls(value.strip().lower().replace("-", "_"))


@dataclass(frozen=True, slots=True)
class MergeReport:
    """Outcome of CartStore.switch_session()."""

    policy: MergePolicy
    backend: BackendKind
    merged: tuple[ProductId, ...] = ()
    skipped: tuple[CartError, ...] = ()
    orphaned: tuple[ProductId, ...] = ()
    local_cleared: bool = False


__all__ = (
    "InventoryStatus",
    "classify_stock",
    "MergePolicy",
    "MergeReport",
)
