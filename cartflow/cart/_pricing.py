"""
Pricing — VAT is carved out of tax-inclusive prices, never added on top.

    vat = total - total / 1.1      (rounded half-up to whole VND)
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, ROUND_HALF_UP

from cartflow._types import CartEntry

VAT_DIVISOR = Decimal("1.1")


def subtotal_of(entries: Iterable[CartEntry]) -> int:
    return sum((e.line_total for e in entries), 0)


def vat_of(total: int, divisor: Decimal = VAT_DIVISOR) -> int:
    gross = Decimal(total)
    vat = gross - gross / divisor
    return int(vat.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def pre_tax_of(total: int, divisor: Decimal = VAT_DIVISOR) -> int:
    return total - vat_of(total, divisor)


__all__ = ("VAT_DIVISOR", "subtotal_of", "vat_of", "pre_tax_of")
