"""
Storage backend protocol — where the authoritative cart lives.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from kungfu import Result

from cartflow._types import CartEntry, CartError, Product, ProductId


class BackendKind(Enum):
    LOCAL = "local"
    REMOTE = "remote"


class StorageBackend(Protocol):
    """
    Cart persistence protocol.

    Two implementations: LocalBackend (device storage, anonymous sessions)
    and RemoteBackend (server cart, authenticated sessions).

    All methods return Result; failures are never swallowed.

    Example — a custom backend:

        class RedisBackend:
            kind = BackendKind.REMOTE

            async def list(self, refresh: bool = False) -> Result[list[CartEntry], CartError]:
                try:
                    raw = await self.client.hgetall(self.key)
                    return Ok(sorted(decode(raw), key=lambda e: e.product_id))
                except Exception as e:
                    return Error(CartErrors.unavailable("Loading cart", e))

            # ... other methods
    """

    @property
    def kind(self) -> BackendKind: ...

    async def list(self, refresh: bool = False) -> Result[list[CartEntry], CartError]:
        """Current persisted entries, ordered by product id."""
        ...

    async def upsert(self, product: Product, quantity: int) -> Result[CartEntry, CartError]:
        """Create or overwrite the entry for product.id. quantity must be >= 1."""
        ...

    async def remove(self, product_id: ProductId) -> Result[None, CartError]:
        """Remove entry. Removing an absent id is not an error."""
        ...

    async def clear(self) -> Result[None, CartError]:
        """Remove every entry."""
        ...


__all__ = ("BackendKind", "StorageBackend")
