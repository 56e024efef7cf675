"""
Remote backend — server-persisted cart for authenticated sessions.

One network round-trip per call, no automatic retries. Failures surface as
typed CartError values: STOCK_INSUFFICIENT when the server rejects a quantity,
UNAVAILABLE for anything else (including transport timeouts).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Protocol

from combinators import lift as L
from kungfu import Result, Ok, Error

from cartflow._types import (
    CartEntry,
    CartError,
    CartErrors,
    CatalogLookup,
    CollaboratorError,
    Product,
    ProductId,
    Shortfall,
)
from cartflow.storage._backend import BackendKind

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Cart API — Collaborator Boundary
# ═══════════════════════════════════════════════════════════════════════════════


class CartApi(Protocol):
    """
    Server cart endpoints for the signed-in user.

    Implementations raise CollaboratorError (code "STOCK_INSUFFICIENT" with
    `available`, or "NOT_FOUND") or any transport exception.
    """

    async def get_items(self) -> Sequence[CartEntry]: ...

    async def put_item(self, product_id: ProductId, quantity: int) -> CartEntry: ...

    async def delete_item(self, product_id: ProductId) -> None: ...

    async def delete_all(self) -> None: ...


def _api_error(
    what: str, product: Product | None = None, requested: int = 0
) -> Callable[[Exception], CartError]:
    """Build the on_error mapper for one call."""

    def convert(e: Exception) -> CartError:
        if isinstance(e, CollaboratorError) and e.code == "STOCK_INSUFFICIENT" and product:
            available = e.available if e.available is not None else product.stock
            return CartErrors.stock([Shortfall(product, requested, available)])
        return CartErrors.unavailable(what, e)

    return convert


# ═══════════════════════════════════════════════════════════════════════════════
# Remote Backend
# ═══════════════════════════════════════════════════════════════════════════════


class RemoteBackend:
    """
    StorageBackend over the server cart API.

    list() always re-fetches live product snapshots so prices and stock
    reflect server truth.
    """

    def __init__(self, api: CartApi, catalog: CatalogLookup) -> None:
        self._api = api
        self._catalog = catalog

    @property
    def kind(self) -> BackendKind:
        return BackendKind.REMOTE

    async def list(self, refresh: bool = False) -> Result[list[CartEntry], CartError]:
        fetched = await L.catching_async(
            self._api.get_items,
            on_error=_api_error("Loading your cart"),
        )
        match fetched:
            case Error(e):
                return Error(e)
            case Ok(items):
                pass

        entries: dict[ProductId, CartEntry] = {}
        for item in items:
            if not isinstance(item, CartEntry):
                return Error(CartErrors.invalid_response("Loading your cart"))
            entries[item.product_id] = await self._with_live_snapshot(item)

        return Ok([entries[pid] for pid in sorted(entries)])

    async def _with_live_snapshot(self, entry: CartEntry) -> CartEntry:
        lookup = await L.catching_async(
            lambda: self._catalog.get(entry.product_id),
            on_error=lambda e: CartErrors.unavailable("Catalog lookup", e),
        )
        match lookup:
            case Ok(None):
                return entry
            case Ok(product):
                return CartEntry(product, entry.quantity)
            case Error(err):
                logger.warning(
                    "Using server snapshot for %s: %s", entry.product_id, err
                )
                return entry
        return entry

    async def upsert(self, product: Product, quantity: int) -> Result[CartEntry, CartError]:
        if quantity < 1:
            return Error(CartErrors.bad_quantity(quantity))

        stored = await L.catching_async(
            lambda: self._api.put_item(product.id, quantity),
            on_error=_api_error(f"Updating '{product.title}'", product, quantity),
        )
        match stored:
            case Ok(entry) if isinstance(entry, CartEntry) and entry.product_id == product.id:
                return Ok(entry)
            case Ok(_):
                return Error(CartErrors.invalid_response(f"Updating '{product.title}'"))
            case Error(e):
                return Error(e)
        return Error(CartErrors.invalid_response(f"Updating '{product.title}'"))

    async def remove(self, product_id: ProductId) -> Result[None, CartError]:
        removed = await L.catching_async(
            lambda: self._api.delete_item(product_id),
            on_error=lambda e: e,
        )
        match removed:
            case Ok(_) | Error(CollaboratorError(code="NOT_FOUND")):
                return Ok(None)
            case Error(e):
                return Error(CartErrors.unavailable("Removing the item", e))
        return Ok(None)

    async def clear(self) -> Result[None, CartError]:
        cleared = await L.catching_async(
            self._api.delete_all,
            on_error=_api_error("Clearing your cart"),
        )
        match cleared:
            case Ok(_):
                return Ok(None)
            case Error(e):
                return Error(e)
        return Error(CartErrors.invalid_response("Clearing your cart"))


__all__ = ("CartApi", "RemoteBackend")
