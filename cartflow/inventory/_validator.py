"""
InventoryValidator — the checkout gate against live stock.

Validation and correction are separate steps:

    evaluate(items)   → ask the collaborator, no side effects
    reconcile(result) → clamp the cart to the reported availability
    check(items)      → both, plus the failure path (reload, assume zero)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from combinators import lift as L
from kungfu import Result, Ok, Error

from cartflow._types import CartEntry, CartError, CartErrors, NextAction, Shortfall
from cartflow.cart import CartState, CartStore
from cartflow.inventory._types import (
    InventoryCheckResult,
    InventoryGateway,
    InventoryReport,
)

logger = logging.getLogger(__name__)


class InventoryValidator:
    """
    Example:
        validator = InventoryValidator(gateway, store)
        result = await validator.check_selection()
        if not result.success:
            show(result.message)   # cart is already clamped
    """

    def __init__(self, gateway: InventoryGateway, store: CartStore) -> None:
        self._gateway = gateway
        self._store = store

    async def evaluate(
        self, items: Iterable[CartEntry]
    ) -> Result[InventoryCheckResult, CartError]:
        candidates = tuple(items)
        if not candidates:
            return Ok(InventoryCheckResult(success=True))

        answered = await L.catching_async(
            lambda: self._gateway.check(candidates),
            on_error=lambda e: CartErrors.unavailable("Inventory check", e),
        )
        match answered:
            case Error(e):
                return Error(e)
            case Ok(report):
                pass

        if not isinstance(report, InventoryReport):
            return Error(CartErrors.invalid_response("Inventory check"))
        if report.success:
            return Ok(InventoryCheckResult(success=True))
        if not report.shortfalls:
            return Error(CartErrors.invalid_response("Inventory check"))

        shortfalls = tuple(report.shortfalls)
        for shortfall in shortfalls:
            logger.warning("Stock shortfall: %s", shortfall.describe())
        return Ok(
            InventoryCheckResult(
                success=False,
                shortfalls=shortfalls,
                failure=CartErrors.stock(shortfalls),
            )
        )

    async def reconcile(self, result: InventoryCheckResult) -> Result[CartState, CartError]:
        """Clamp the cart to a shortfall verdict. A passing verdict changes nothing."""
        if result.success or not result.shortfalls:
            return Ok(self._store.entries)
        return await self._store.clamp(result.shortfalls)

    async def check(self, items: Iterable[CartEntry]) -> InventoryCheckResult:
        candidates = tuple(items)
        evaluated = await self.evaluate(candidates)

        match evaluated:
            case Ok(result):
                if result.success:
                    return result
                match await self.reconcile(result):
                    case Error(e):
                        logger.warning("Could not clamp cart after shortfall: %s", e.message)
                        return replace(result, failure=replace(e, action=NextAction.RETRY))
                return result
            case Error(e):
                return await self._assume_nothing_available(candidates, e)

        return await self._assume_nothing_available(
            candidates, CartErrors.invalid_response("Inventory check")
        )

    async def check_selection(self) -> InventoryCheckResult:
        return await self.check(self._store.selected_entries())

    async def _assume_nothing_available(
        self, items: tuple[CartEntry, ...], failure: CartError
    ) -> InventoryCheckResult:
        """Collaborator failure: reload authoritative state, report every item at zero."""
        logger.warning("Inventory check failed, reloading cart: %s", failure.message)
        await self._store.reload()
        return InventoryCheckResult(
            success=False,
            shortfalls=tuple(Shortfall(e.product, e.quantity, 0) for e in items),
            failure=failure,
        )


__all__ = ("InventoryValidator",)
