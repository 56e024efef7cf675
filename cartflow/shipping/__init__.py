"""
Shipping — rush eligibility and delivery fee quotes.

    from cartflow import shipping as S

    calculator = S.ShippingCalculator(S.ScheduleShippingService())

    delivery, eligibility = await calculator.gate_delivery(delivery, entries)
    quote = await calculator.quote(entries, delivery)
    quote.confirmed        # False → fallback fee, not a real quote
"""

from cartflow.shipping._types import (
    RUSH_UNAVAILABLE_PROMPT,
    RushArea,
    RushEligibility,
    ShippingQuote,
    FeeSchedule,
    ShippingGateway,
)
from cartflow.shipping._schedule import ScheduleShippingService
from cartflow.shipping._calculator import ShippingCalculator

__all__ = (
    # Types
    "RUSH_UNAVAILABLE_PROMPT",
    "RushArea",
    "RushEligibility",
    "ShippingQuote",
    "FeeSchedule",
    "ShippingGateway",
    # Services
    "ScheduleShippingService",
    "ShippingCalculator",
)
