"""
Inventory types — the collaborator's answer and the validator's verdict.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from cartflow._types import CartEntry, CartError, CartErrorKind, Shortfall


@dataclass(frozen=True, slots=True)
class InventoryReport:
    """Raw answer of the inventory-check collaborator."""

    success: bool
    shortfalls: tuple[Shortfall, ...] = ()


class InventoryGateway(Protocol):
    """
    External inventory check.

    Receives the full candidate list; raises on network/server failure
    (timeouts included).
    """

    async def check(self, items: Sequence[CartEntry]) -> InventoryReport: ...


@dataclass(frozen=True, slots=True)
class InventoryCheckResult:
    """
    Verdict for one candidate list.

    success=False always carries shortfalls. failure holds the error to show:
    a stock error for real shortfalls, the cart error when the clamp could not
    be applied (retryable), or the collaborator failure when every item was
    reported with zero assumed availability.
    """

    success: bool
    shortfalls: tuple[Shortfall, ...] = ()
    failure: CartError | None = None

    @property
    def message(self) -> str:
        return self.failure.message if self.failure is not None else ""

    @property
    def is_collaborator_failure(self) -> bool:
        return (
            self.failure is not None
            and self.failure.kind is not CartErrorKind.STOCK_INSUFFICIENT
        )


__all__ = ("InventoryReport", "InventoryGateway", "InventoryCheckResult")
