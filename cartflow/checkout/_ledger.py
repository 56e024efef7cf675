"""
Submission ledger — at-most-once order placement per checkout.

Lifecycle of one key:
    (absent) → PENDING → COMPLETED   (order created, replayed to later callers)
                       → (removed)   (failed, the user may retry)

A caller that finds a PENDING record waits for it to settle instead of
submitting a second order.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum, auto

from kungfu import Result, Ok, Error

from cartflow._types import CartError, CartErrors
from cartflow.checkout._types import Order


class SubmissionState(Enum):
    PENDING = auto()
    COMPLETED = auto()
    FAILED = auto()


@dataclass
class Submission:
    """Mutable ledger record for one checkout key."""

    key: str
    state: SubmissionState = SubmissionState.PENDING
    order: Order | None = None
    error: CartError | None = None
    settled: asyncio.Event = field(default_factory=asyncio.Event)

    async def outcome(self) -> Result[Order, CartError]:
        await self.settled.wait()
        if self.order is not None:
            return Ok(self.order)
        return Error(self.error or CartErrors.invalid_response("Order submission"))


class SubmissionLedger:
    """
    In-memory ledger. Single process only: no distributed lock and nothing
    survives a restart.
    """

    def __init__(self) -> None:
        self._records: dict[str, Submission] = {}
        self._lock = asyncio.Lock()

    async def reserve(self, key: str) -> tuple[bool, Submission]:
        """
        Atomically claim key.

        Returns (True, record) when the caller owns the submission, or
        (False, existing) when another call already does or did.
        """
        async with self._lock:
            existing = self._records.get(key)
            if existing is not None and existing.state is not SubmissionState.FAILED:
                return False, existing
            record = Submission(key)
            self._records[key] = record
            return True, record

    async def complete(self, key: str, order: Order) -> None:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                record = self._records[key] = Submission(key)
            record.state = SubmissionState.COMPLETED
            record.order = order
            record.settled.set()

    async def fail(self, key: str, error: CartError) -> None:
        async with self._lock:
            record = self._records.pop(key, None)
            if record is None:
                return
            record.state = SubmissionState.FAILED
            record.error = error
            record.settled.set()

    async def get(self, key: str) -> Submission | None:
        async with self._lock:
            return self._records.get(key)


__all__ = ("SubmissionState", "Submission", "SubmissionLedger")
