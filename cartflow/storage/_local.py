"""
Local backend — device-persisted cart for anonymous sessions.

The whole cart is one keyed record holding versioned JSON:

    {"version": 1, "entries": [{"product": {...}, "quantity": 2}, ...]}

A bare JSON list (the unversioned layout written by older clients) is read
as version 0 and rewritten as version 1 on the next mutation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from combinators import lift as L
from kungfu import Result, Ok, Error

from cartflow._types import (
    CartEntry,
    CartError,
    CartErrors,
    CatalogLookup,
    Category,
    Product,
    ProductId,
)
from cartflow.storage._backend import BackendKind

logger = logging.getLogger(__name__)

CART_RECORD_VERSION = 1


# ═══════════════════════════════════════════════════════════════════════════════
# Record Store Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class RecordStore(Protocol):
    """
    Durable key → payload storage (browser localStorage, sqlite file, ...).

    All methods return Result; a failed save must surface, never drop.
    """

    async def load(self, key: str) -> Result[str | None, CartError]:
        """Payload for key, Ok(None) if absent."""
        ...

    async def save(self, key: str, payload: str) -> Result[None, CartError]: ...

    async def delete(self, key: str) -> Result[bool, CartError]:
        """Returns Ok(True) if a record existed."""
        ...


class MemoryRecordStore:
    """
    In-process record store.

    Note: single-instance / tests only; nothing survives a restart.
    """

    def __init__(self) -> None:
        self._records: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def load(self, key: str) -> Result[str | None, CartError]:
        async with self._lock:
            return Ok(self._records.get(key))

    async def save(self, key: str, payload: str) -> Result[None, CartError]:
        async with self._lock:
            self._records[key] = payload
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, CartError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)


# ═══════════════════════════════════════════════════════════════════════════════
# Record Codec
# ═══════════════════════════════════════════════════════════════════════════════


def _product_to_dict(product: Product) -> dict[str, Any]:
    return {
        "id": product.id,
        "title": product.title,
        "price": product.price,
        "stock": product.stock,
        "category": product.category.value,
        "rush_eligible": product.rush_eligible,
        "weight": product.weight,
    }


def _product_from_dict(data: dict[str, Any], version: int) -> Product:
    if version == 0:
        # Unversioned layout stored the catalog DTO as-is
        return Product(
            id=str(data["productID"]),
            title=data["title"],
            price=int(data["price"]),
            stock=int(data.get("quantity", 0)),
            category=Category(str(data.get("category", "book")).lower()),
            rush_eligible=bool(data.get("rushEligible", data.get("eligible", False))),
            weight=float(data.get("weight") or 0.5),
        )
    return Product(
        id=str(data["id"]),
        title=data["title"],
        price=int(data["price"]),
        stock=int(data["stock"]),
        category=Category(data["category"]),
        rush_eligible=bool(data["rush_eligible"]),
        weight=float(data["weight"]),
    )


def encode_cart_record(entries: list[CartEntry]) -> str:
    return json.dumps(
        {
            "version": CART_RECORD_VERSION,
            "entries": [
                {"product": _product_to_dict(e.product), "quantity": e.quantity}
                for e in entries
            ],
        },
        ensure_ascii=False,
    )


def decode_cart_record(payload: str) -> Result[list[CartEntry], CartError]:
    """
    Parse a stored record into entries ordered by product id.

    Entries with quantity < 1 are dropped; a later duplicate overrides an earlier one.
    """
    try:
        data = json.loads(payload)
        if isinstance(data, list):
            version, raw_entries = 0, data
        else:
            version, raw_entries = int(data["version"]), data["entries"]

        if version > CART_RECORD_VERSION:
            return Error(
                CartErrors.storage(f"cart record version {version} is newer than supported")
            )

        entries: dict[ProductId, CartEntry] = {}
        for raw in raw_entries:
            quantity = int(raw["quantity"])
            if quantity < 1:
                continue
            product = _product_from_dict(raw["product"], version)
            entries[product.id] = CartEntry(product, quantity)

        return Ok([entries[pid] for pid in sorted(entries)])

    except (ValueError, KeyError, TypeError) as e:
        return Error(CartErrors.storage("reading cart record", e))


# ═══════════════════════════════════════════════════════════════════════════════
# Local Backend
# ═══════════════════════════════════════════════════════════════════════════════


class LocalBackend:
    """
    StorageBackend over a single keyed record.

    Every mutation is written through before returning.

    Example:
        backend = LocalBackend(MemoryRecordStore(), key="aims_cart_items")
        await backend.upsert(product, 2)
        result = await backend.list()
    """

    def __init__(
        self,
        records: RecordStore,
        key: str = "aims_cart_items",
        catalog: CatalogLookup | None = None,
    ) -> None:
        self._records = records
        self._key = key
        self._catalog = catalog

    @property
    def kind(self) -> BackendKind:
        return BackendKind.LOCAL

    async def _read(self) -> Result[dict[ProductId, CartEntry], CartError]:
        loaded = await self._records.load(self._key)
        match loaded:
            case Ok(None):
                return Ok({})
            case Ok(payload):
                decoded = decode_cart_record(payload)
                match decoded:
                    case Ok(entries):
                        return Ok({e.product_id: e for e in entries})
                    case Error(e):
                        return Error(e)
            case Error(e):
                return Error(e)
        return Error(CartErrors.storage("reading cart record"))

    async def _write(self, entries: dict[ProductId, CartEntry]) -> Result[None, CartError]:
        ordered = [entries[pid] for pid in sorted(entries)]
        if not ordered:
            deleted = await self._records.delete(self._key)
            match deleted:
                case Ok(_):
                    return Ok(None)
                case Error(e):
                    return Error(e)
        return await self._records.save(self._key, encode_cart_record(ordered))

    async def list(self, refresh: bool = False) -> Result[list[CartEntry], CartError]:
        read = await self._read()
        match read:
            case Error(e):
                return Error(e)
            case Ok(entries):
                pass

        if refresh and self._catalog is not None and entries:
            refreshed = await self._refresh(entries, self._catalog)
            if refreshed != entries:
                written = await self._write(refreshed)
                match written:
                    case Error(e):
                        return Error(e)
            entries = refreshed

        return Ok([entries[pid] for pid in sorted(entries)])

    async def _refresh(
        self, entries: dict[ProductId, CartEntry], catalog: CatalogLookup
    ) -> dict[ProductId, CartEntry]:
        """Swap stale snapshots for live ones; drop delisted products."""
        fresh: dict[ProductId, CartEntry] = {}

        for pid, entry in entries.items():
            lookup = await L.catching_async(
                lambda p=pid: catalog.get(p),
                on_error=lambda e: CartErrors.unavailable("Catalog lookup", e),
            )
            match lookup:
                case Ok(None):
                    logger.info("Dropping delisted product %s from local cart", pid)
                case Ok(product):
                    fresh[pid] = CartEntry(product, entry.quantity)
                case Error(err):
                    logger.warning("Keeping stale snapshot for %s: %s", pid, err)
                    fresh[pid] = entry

        return fresh

    async def upsert(self, product: Product, quantity: int) -> Result[CartEntry, CartError]:
        if quantity < 1:
            return Error(CartErrors.bad_quantity(quantity))

        read = await self._read()
        match read:
            case Error(e):
                return Error(e)
            case Ok(entries):
                entry = CartEntry(product, quantity)
                entries[product.id] = entry
                written = await self._write(entries)
                match written:
                    case Ok(_):
                        return Ok(entry)
                    case Error(e):
                        return Error(e)
        return Error(CartErrors.storage("saving cart record"))

    async def remove(self, product_id: ProductId) -> Result[None, CartError]:
        read = await self._read()
        match read:
            case Error(e):
                return Error(e)
            case Ok(entries):
                if product_id not in entries:
                    return Ok(None)
                del entries[product_id]
                return await self._write(entries)
        return Error(CartErrors.storage("saving cart record"))

    async def clear(self) -> Result[None, CartError]:
        deleted = await self._records.delete(self._key)
        match deleted:
            case Ok(_):
                return Ok(None)
            case Error(e):
                return Error(e)
        return Error(CartErrors.storage("clearing cart record"))


__all__ = (
    "CART_RECORD_VERSION",
    "RecordStore",
    "MemoryRecordStore",
    "encode_cart_record",
    "decode_cart_record",
    "LocalBackend",
)
