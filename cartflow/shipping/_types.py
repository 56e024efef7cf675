"""
Shipping types — rush areas, eligibility answers, quotes and the fee schedule.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from cartflow._types import CartEntry, DeliveryInfo, Product, ProductId
from cartflow.settings import HANOI_INNER_DISTRICTS, Settings

RUSH_UNAVAILABLE_PROMPT = (
    "Rush order not available. Please update your delivery address or product selection."
)


def _norm(value: str) -> str:
    return value.strip().casefold()


# ═══════════════════════════════════════════════════════════════════════════════
# Rush Area
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RushArea:
    """Fixed set of city/district pairs that can receive same-day delivery."""

    city: str = "Hà Nội"
    districts: tuple[str, ...] = HANOI_INNER_DISTRICTS

    @classmethod
    def from_settings(cls, settings: Settings) -> RushArea:
        return cls(settings.rush_city, settings.rush_districts)

    def covers(self, city: str, district: str) -> bool:
        if _norm(city) != _norm(self.city):
            return False
        return _norm(district) in {_norm(d) for d in self.districts}


@dataclass(frozen=True, slots=True)
class RushEligibility:
    """Answer of the rush-eligibility query."""

    supported: bool
    rush_products: tuple[ProductId, ...] = ()
    regular_products: tuple[ProductId, ...] = ()
    prompt: str = ""

    @classmethod
    def unsupported(cls, products: Sequence[Product] = ()) -> RushEligibility:
        return cls(
            supported=False,
            regular_products=tuple(p.id for p in products),
            prompt=RUSH_UNAVAILABLE_PROMPT,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Quote
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ShippingQuote:
    """
    Fee figures for one candidate order.

    confirmed=False marks the fallback used when no real quote was obtained.
    """

    regular_fee: int
    rush_fee: int = 0
    rush_items: tuple[ProductId, ...] = ()
    regular_items: tuple[ProductId, ...] = ()
    confirmed: bool = True

    @property
    def total_fee(self) -> int:
        return self.regular_fee + self.rush_fee


@dataclass(frozen=True, slots=True)
class FeeSchedule:
    """Weight-based delivery fees (VND, kg)."""

    inner_city_initial_fee: int = 22_000
    inner_city_base_weight: float = 3.0
    regular_initial_fee: int = 30_000
    regular_base_weight: float = 0.5
    extra_fee_per_unit: int = 2_500
    weight_unit: float = 0.5
    free_shipping_threshold: int = 100_000
    free_shipping_max: int = 25_000
    rush_fee_per_unit: int = 10_000
    inner_cities: frozenset[str] = field(
        default_factory=lambda: frozenset(
            {
                "hà nội",
                "hanoi",
                "tp.hcm",
                "ho chi minh city",
                "thành phố hồ chí minh",
                "hồ chí minh",
            }
        )
    )

    def is_inner_city(self, city: str) -> bool:
        return _norm(city) in self.inner_cities


# ═══════════════════════════════════════════════════════════════════════════════
# Gateway
# ═══════════════════════════════════════════════════════════════════════════════


class ShippingGateway(Protocol):
    """External shipping collaborator. Raises on network/server failure."""

    async def check_rush(
        self, city: str, district: str, products: Sequence[Product]
    ) -> RushEligibility: ...

    async def quote(
        self, items: Sequence[CartEntry], delivery: DeliveryInfo
    ) -> ShippingQuote: ...


__all__ = (
    "RUSH_UNAVAILABLE_PROMPT",
    "RushArea",
    "RushEligibility",
    "ShippingQuote",
    "FeeSchedule",
    "ShippingGateway",
)
