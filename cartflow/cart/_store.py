"""
CartStore — the in-memory cache of backend truth for one session.

Consistency mechanism: every mutating call writes through the currently
resolved backend and then reloads the FULL cart from it. The returned value
is always that fresh authoritative state, never an optimistic local edit.

Ordering:
- Mutations are serialized through a per-cart asyncio.Lock, so an older
  mutation's reload can never overwrite state produced by a newer one.
- Each operation captures the session epoch when it starts. A login/logout
  bumps the epoch; results for an older epoch (or after close()) are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from typing import Any

from kungfu import Result, Ok, Error

from cartflow._types import (
    CartEntry,
    CartError,
    CartErrorKind,
    CartErrors,
    Product,
    ProductId,
    Shortfall,
)
from cartflow.cart._pricing import pre_tax_of, subtotal_of, vat_of
from cartflow.cart._types import (
    InventoryStatus,
    MergePolicy,
    MergeReport,
    classify_stock,
)
from cartflow.settings import Settings
from cartflow.storage import BackendKind, BackendSelector, StorageBackend

logger = logging.getLogger(__name__)

type CartState = tuple[CartEntry, ...]
type BackendOp = Callable[[StorageBackend], Awaitable[Result[Any, CartError]]]


class CartStore:
    """
    Authoritative cart state: entries + checkout selection.

    Example:
        store = CartStore(selector)
        await store.reload()
        await store.add_item(book, 2)
        store.select(book.id)
        print(store.selected_total, store.selected_vat)
    """

    def __init__(self, selector: BackendSelector, settings: Settings | None = None) -> None:
        self._selector = selector
        self._settings = settings or Settings()
        self._entries: dict[ProductId, CartEntry] = {}
        self._selection: set[ProductId] = set()
        self._lock = asyncio.Lock()
        self._epoch = 0
        self._closed = False
        self._unsubscribe = selector.auth.subscribe(self._on_auth_change)
        self.last_error: CartError | None = None

    # ───────────────────────────────────────────────────────────────────────────
    # Session
    # ───────────────────────────────────────────────────────────────────────────

    def _on_auth_change(self, authenticated: bool) -> None:
        self._epoch += 1
        logger.info(
            "Auth changed (authenticated=%s); cart session epoch %d",
            authenticated,
            self._epoch,
        )

    def close(self) -> None:
        """Stop applying results; in-flight responses are discarded on arrival."""
        self._closed = True
        self._unsubscribe()

    @property
    def backend_kind(self) -> BackendKind:
        return self._selector.resolve().kind

    # ───────────────────────────────────────────────────────────────────────────
    # Reads
    # ───────────────────────────────────────────────────────────────────────────

    @property
    def entries(self) -> CartState:
        return tuple(self._entries[pid] for pid in sorted(self._entries))

    def get(self, product_id: ProductId) -> CartEntry | None:
        return self._entries.get(product_id)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def selection(self) -> frozenset[ProductId]:
        return frozenset(self._selection)

    def selected_entries(self) -> CartState:
        return tuple(e for e in self.entries if e.product_id in self._selection)

    @property
    def item_count(self) -> int:
        return sum(e.quantity for e in self._entries.values())

    @property
    def total_price(self) -> int:
        return subtotal_of(self._entries.values())

    @property
    def vat_amount(self) -> int:
        return vat_of(self.total_price, self._settings.vat_divisor)

    @property
    def pre_tax_total(self) -> int:
        return pre_tax_of(self.total_price, self._settings.vat_divisor)

    @property
    def selected_item_count(self) -> int:
        return sum(e.quantity for e in self.selected_entries())

    @property
    def selected_total(self) -> int:
        return subtotal_of(self.selected_entries())

    @property
    def selected_vat(self) -> int:
        return vat_of(self.selected_total, self._settings.vat_divisor)

    def inventory_status(self, entry: CartEntry | ProductId) -> InventoryStatus:
        if not isinstance(entry, CartEntry):
            found = self._entries.get(entry)
            if found is None:
                raise KeyError(entry)
            entry = found
        return classify_stock(
            entry.quantity, entry.product.stock, self._settings.low_stock_threshold
        )

    def inventory_statuses(self) -> dict[ProductId, InventoryStatus]:
        return {e.product_id: self.inventory_status(e) for e in self.entries}

    @property
    def has_inventory_issue(self) -> bool:
        return any(status.is_issue for status in self.inventory_statuses().values())

    # ───────────────────────────────────────────────────────────────────────────
    # Selection (in-memory only)
    # ───────────────────────────────────────────────────────────────────────────

    def select(self, product_id: ProductId) -> bool:
        """Select an entry for checkout. Ids not in the cart are ignored."""
        if product_id not in self._entries:
            return False
        self._selection.add(product_id)
        return True

    def unselect(self, product_id: ProductId) -> None:
        self._selection.discard(product_id)

    def select_all(self) -> None:
        self._selection = set(self._entries)

    def unselect_all(self) -> None:
        self._selection.clear()

    def _prune_selection(self) -> None:
        self._selection &= self._entries.keys()

    # ───────────────────────────────────────────────────────────────────────────
    # Reload
    # ───────────────────────────────────────────────────────────────────────────

    def _is_current(self, epoch: int) -> bool:
        return not self._closed and epoch == self._epoch

    async def _reload_from(
        self, backend: StorageBackend, epoch: int, refresh: bool = False
    ) -> Result[CartState, CartError]:
        listed = await backend.list(refresh)
        if not self._is_current(epoch):
            logger.warning("Discarding stale cart reload (epoch %d)", epoch)
            return Error(CartErrors.discarded("Cart reload"))

        match listed:
            case Ok(entries):
                self._entries = {e.product_id: e for e in entries}
                self._prune_selection()
                logger.debug(
                    "Reloaded %d cart entries from %s", len(entries), backend.kind.value
                )
                return Ok(self.entries)
            case Error(e):
                return Error(e)
        return Error(CartErrors.invalid_response("Cart reload"))

    async def reload(self, refresh: bool = False) -> Result[CartState, CartError]:
        """Replace the cache with backend truth. refresh=True re-fetches local snapshots."""
        async with self._lock:
            epoch = self._epoch
            return await self._reload_from(self._selector.resolve(), epoch, refresh)

    # ───────────────────────────────────────────────────────────────────────────
    # Mutations
    # ───────────────────────────────────────────────────────────────────────────

    async def _mutate(self, op: BackendOp) -> Result[CartState, CartError]:
        """Run op against the resolved backend, then reload whatever happened."""
        async with self._lock:
            epoch = self._epoch
            backend = self._selector.resolve()
            outcome = await op(backend)
            reloaded = await self._reload_from(backend, epoch)

            match outcome:
                case Error(err):
                    err = self._with_latest_stock(err)
                    self.last_error = err
                    logger.warning("Cart mutation failed: %s", err.message)
                    return Error(err)

            match reloaded:
                case Error(e):
                    self.last_error = e
                case _:
                    self.last_error = None
            return reloaded

    def _with_latest_stock(self, err: CartError) -> CartError:
        """Rewrite a stock error with the freshest availability we know of."""
        if err.kind is not CartErrorKind.STOCK_INSUFFICIENT:
            return err
        updated: list[Shortfall] = []
        for shortfall in err.shortfalls:
            current = self._entries.get(shortfall.product_id)
            if current is not None:
                updated.append(
                    Shortfall(current.product, shortfall.requested, current.product.stock)
                )
            else:
                updated.append(shortfall)
        return CartErrors.stock(updated)

    async def add_item(self, product: Product, quantity: int = 1) -> Result[CartState, CartError]:
        """Create or overwrite the entry for product. quantity <= 0 removes it."""
        if quantity <= 0:
            return await self.remove_item(product)
        return await self._mutate(lambda b: b.upsert(product, quantity))

    async def set_item_quantity(
        self, product: Product, quantity: int
    ) -> Result[CartState, CartError]:
        """
        Set quantity; quantity <= 0 removes the entry.

        On a stock rejection the requested quantity is NOT applied: the cart
        reconciles to the backend's state and the error names the product and
        its latest known availability.
        """
        if quantity <= 0:
            return await self.remove_item(product)
        return await self._mutate(lambda b: b.upsert(product, quantity))

    async def remove_item(self, product: Product | ProductId) -> Result[CartState, CartError]:
        product_id = product.id if isinstance(product, Product) else product
        return await self._mutate(lambda b: b.remove(product_id))

    async def remove_items(self, product_ids: Iterable[ProductId]) -> Result[CartState, CartError]:
        """Remove several entries with one trailing reload (used after an order commits)."""
        ids = tuple(product_ids)

        async def op(backend: StorageBackend) -> Result[None, CartError]:
            for pid in ids:
                removed = await backend.remove(pid)
                if isinstance(removed, Error):
                    return removed
            return Ok(None)

        return await self._mutate(op)

    async def clear(self) -> Result[CartState, CartError]:
        return await self._mutate(lambda b: b.clear())

    async def clamp(self, shortfalls: Iterable[Shortfall]) -> Result[CartState, CartError]:
        """
        Lower each shortfalled entry to its available stock (0 removes it).

        Quantities are never raised and entries are never added; entries already
        within stock, or no longer in the cart, are untouched.
        """
        corrections = tuple(shortfalls)

        async def op(backend: StorageBackend) -> Result[None, CartError]:
            first_error: Error[CartError] | None = None
            for shortfall in corrections:
                current = self._entries.get(shortfall.product_id)
                if current is None:
                    # Removed while the check was in flight
                    continue
                requested = current.quantity
                available = max(shortfall.available, 0)
                if requested <= available:
                    continue

                product = replace(current.product, stock=available)
                if available == 0:
                    result = await backend.remove(product.id)
                else:
                    result = await backend.upsert(product, available)
                logger.warning(
                    "Clamped %s from %d to %d", product.id, requested, available
                )
                if isinstance(result, Error) and first_error is None:
                    first_error = result
            return first_error if first_error is not None else Ok(None)

        return await self._mutate(op)

    # ───────────────────────────────────────────────────────────────────────────
    # Login / Logout
    # ───────────────────────────────────────────────────────────────────────────

    async def switch_session(
        self, policy: MergePolicy | str | None = None
    ) -> Result[MergeReport, CartError]:
        """
        Reconcile after an observed auth transition.

        Signing in applies the merge policy (local → remote); signing out, or
        DISCARD, just reloads from the newly resolved backend.
        """
        chosen = MergePolicy.parse(policy if policy is not None else self._settings.merge_policy)

        async with self._lock:
            epoch = self._epoch
            target = self._selector.resolve()
            report = MergeReport(chosen, target.kind)

            if target.kind is BackendKind.REMOTE:
                merged = await self._merge_local_into(target, chosen)
                match merged:
                    case Ok(value):
                        report = value
                    case Error(e):
                        self.last_error = e
                        return Error(e)

            reloaded = await self._reload_from(target, epoch)
            match reloaded:
                case Ok(_):
                    logger.info(
                        "Cart session on %s: merged=%d skipped=%d orphaned=%d",
                        target.kind.value,
                        len(report.merged),
                        len(report.skipped),
                        len(report.orphaned),
                    )
                    return Ok(report)
                case Error(e):
                    return Error(e)
        return Error(CartErrors.invalid_response("Session switch"))

    async def _merge_local_into(
        self, remote: StorageBackend, policy: MergePolicy
    ) -> Result[MergeReport, CartError]:
        local = self._selector.local
        local_listed = await local.list()
        match local_listed:
            case Error(e):
                return Error(e)
            case Ok(local_entries):
                pass

        if policy is MergePolicy.DISCARD or not local_entries:
            return Ok(
                MergeReport(
                    policy,
                    remote.kind,
                    orphaned=tuple(e.product_id for e in local_entries),
                )
            )

        remote_listed = await remote.list()
        match remote_listed:
            case Error(e):
                return Error(e)
            case Ok(remote_entries):
                pass

        remote_qty = {e.product_id: e.quantity for e in remote_entries}
        merged: list[ProductId] = []
        skipped: list[CartError] = []
        retry_needed = False

        for entry in local_entries:
            existing = remote_qty.get(entry.product_id, 0)
            if policy is MergePolicy.REMOTE_WINS and existing:
                continue
            quantity = max(entry.quantity, existing)
            if quantity == existing:
                continue
            upserted = await remote.upsert(entry.product, quantity)
            match upserted:
                case Ok(_):
                    merged.append(entry.product_id)
                case Error(e):
                    skipped.append(e)
                    retry_needed = retry_needed or e.kind is not CartErrorKind.STOCK_INSUFFICIENT

        local_cleared = False
        if not retry_needed:
            cleared = await local.clear()
            local_cleared = isinstance(cleared, Ok)

        return Ok(
            MergeReport(
                policy,
                remote.kind,
                merged=tuple(merged),
                skipped=tuple(skipped),
                local_cleared=local_cleared,
            )
        )


__all__ = ("CartState", "CartStore")
