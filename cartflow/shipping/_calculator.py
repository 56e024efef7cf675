"""
ShippingCalculator — rush gating and fee quotes over a ShippingGateway.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from combinators import lift as L
from kungfu import Ok, Error

from cartflow._types import CartEntry, CartErrors, DeliveryInfo
from cartflow.settings import Settings
from cartflow.shipping._types import (
    RushArea,
    RushEligibility,
    ShippingGateway,
    ShippingQuote,
)

logger = logging.getLogger(__name__)


class ShippingCalculator:
    """
    Rush is selectable only when BOTH hold:
    - the city/district pair is inside the fixed RushArea
    - the collaborator reports the product mix as rush-supported

    Otherwise DeliveryInfo.is_rush_order is forced to False.
    """

    def __init__(
        self,
        gateway: ShippingGateway,
        settings: Settings | None = None,
        area: RushArea | None = None,
    ) -> None:
        settings = settings or Settings()
        self._gateway = gateway
        self._area = area or RushArea.from_settings(settings)
        self._fallback_fee = settings.fallback_shipping_fee

    @property
    def area(self) -> RushArea:
        return self._area

    async def rush_eligibility(
        self, delivery: DeliveryInfo, entries: Sequence[CartEntry]
    ) -> RushEligibility:
        products = [e.product for e in entries]
        if not self._area.covers(delivery.city, delivery.district):
            return RushEligibility.unsupported(products)

        answered = await L.catching_async(
            lambda: self._gateway.check_rush(delivery.city, delivery.district, products),
            on_error=lambda e: CartErrors.unavailable("Rush eligibility check", e),
        )
        match answered:
            case Ok(RushEligibility() as eligibility):
                return eligibility
            case Ok(_):
                logger.warning("Rush eligibility check returned an unexpected response")
            case Error(e):
                logger.warning("%s", e.message)
        return RushEligibility.unsupported(products)

    async def gate_delivery(
        self, delivery: DeliveryInfo, entries: Sequence[CartEntry]
    ) -> tuple[DeliveryInfo, RushEligibility]:
        """Return delivery with is_rush_order forced off when rush is not allowed."""
        eligibility = await self.rush_eligibility(delivery, entries)
        if delivery.is_rush_order and not eligibility.supported:
            logger.info(
                "Rush delivery unavailable for %s / %s; switching to regular",
                delivery.city,
                delivery.district,
            )
            delivery = delivery.with_rush(False)
        return delivery, eligibility

    async def quote(
        self, entries: Sequence[CartEntry], delivery: DeliveryInfo
    ) -> ShippingQuote:
        if not entries:
            return ShippingQuote(regular_fee=0)

        answered = await L.catching_async(
            lambda: self._gateway.quote(entries, delivery),
            on_error=lambda e: CartErrors.unavailable("Shipping fee calculation", e),
        )
        match answered:
            case Ok(ShippingQuote() as quote):
                return quote
            case Ok(_):
                logger.warning("Shipping fee calculation returned an unexpected response")
            case Error(e):
                logger.warning("%s", e.message)

        logger.warning("Using fallback shipping fee %d", self._fallback_fee)
        return ShippingQuote(
            regular_fee=self._fallback_fee,
            regular_items=tuple(e.product_id for e in entries),
            confirmed=False,
        )


__all__ = ("ShippingCalculator",)
