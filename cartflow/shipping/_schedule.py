"""
ScheduleShippingService — in-process shipping collaborator.

Fee rules:
- The parcel is weighted by its heaviest item.
- Inner city: flat fee up to the base weight, then a surcharge per extra unit.
  Elsewhere: same shape with a higher fee and a smaller base weight.
- Regular items over the free-shipping threshold get up to the max discount.
- Rush items pay their own weight fee plus a surcharge per unit.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from cartflow._types import CartEntry, DeliveryInfo, Product
from cartflow.cart import subtotal_of
from cartflow.shipping._types import (
    RUSH_UNAVAILABLE_PROMPT,
    FeeSchedule,
    RushArea,
    RushEligibility,
    ShippingQuote,
)


class ScheduleShippingService:
    def __init__(
        self,
        schedule: FeeSchedule | None = None,
        area: RushArea | None = None,
    ) -> None:
        self._schedule = schedule or FeeSchedule()
        self._area = area or RushArea()

    @property
    def schedule(self) -> FeeSchedule:
        return self._schedule

    async def check_rush(
        self, city: str, district: str, products: Sequence[Product]
    ) -> RushEligibility:
        rush = tuple(p.id for p in products if p.rush_eligible)
        regular = tuple(p.id for p in products if not p.rush_eligible)
        supported = self._area.covers(city, district) and bool(rush)
        return RushEligibility(
            supported=supported,
            rush_products=rush,
            regular_products=regular,
            prompt="" if supported else RUSH_UNAVAILABLE_PROMPT,
        )

    async def quote(
        self, items: Sequence[CartEntry], delivery: DeliveryInfo
    ) -> ShippingQuote:
        if not delivery.is_rush_order:
            return ShippingQuote(
                regular_fee=self._regular_fee(items, delivery.city),
                regular_items=tuple(e.product_id for e in items),
            )

        rush = [e for e in items if e.product.rush_eligible]
        regular = [e for e in items if not e.product.rush_eligible]
        rush_fee = 0
        if rush:
            rush_fee = self._weight_fee(rush, delivery.city) + sum(
                self._schedule.rush_fee_per_unit * e.quantity for e in rush
            )
        return ShippingQuote(
            regular_fee=self._regular_fee(regular, delivery.city),
            rush_fee=rush_fee,
            rush_items=tuple(e.product_id for e in rush),
            regular_items=tuple(e.product_id for e in regular),
        )

    def _regular_fee(self, items: Sequence[CartEntry], city: str) -> int:
        if not items:
            return 0
        base = self._weight_fee(items, city)
        if subtotal_of(items) > self._schedule.free_shipping_threshold:
            return max(0, base - min(base, self._schedule.free_shipping_max))
        return base

    def _weight_fee(self, items: Sequence[CartEntry], city: str) -> int:
        weight = max((e.product.weight for e in items), default=0.0)
        if weight <= 0:
            return 0

        s = self._schedule
        if s.is_inner_city(city):
            initial, base_weight = s.inner_city_initial_fee, s.inner_city_base_weight
        else:
            initial, base_weight = s.regular_initial_fee, s.regular_base_weight

        if weight <= base_weight:
            return initial
        extra_units = math.ceil((weight - base_weight) / s.weight_unit)
        return initial + extra_units * s.extra_fee_per_unit


__all__ = ("ScheduleShippingService",)
