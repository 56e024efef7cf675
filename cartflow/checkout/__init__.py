"""
Checkout — delivery → payment → confirmation → placed.

    from cartflow import checkout as Co

    checkout = Co.CheckoutOrchestrator(store, validator, shipping, orders)

    await checkout.begin()            # frozen selection + stock gate
    await checkout.set_delivery(info)
    await checkout.next()             # field validation gate
    await checkout.next()             # payment (VNPAY)
    summary = await checkout.summary()   # recomputed on every call
    await checkout.place_order(confirmed_summary)
"""

from cartflow.checkout._types import (
    CheckoutStep,
    PaymentMethod,
    CostSummary,
    OrderStatus,
    OrderLine,
    OrderRequest,
    OrderReceipt,
    Order,
    OrderGateway,
)
from cartflow.checkout._validation import (
    PHONE_PATTERN,
    EMAIL_PATTERN,
    delivery_field_errors,
    validate_delivery,
)
from cartflow.checkout._ledger import SubmissionState, Submission, SubmissionLedger
from cartflow.checkout._orchestrator import CheckoutOrchestrator

__all__ = (
    # Types
    "CheckoutStep",
    "PaymentMethod",
    "CostSummary",
    "OrderStatus",
    "OrderLine",
    "OrderRequest",
    "OrderReceipt",
    "Order",
    "OrderGateway",
    # Validation
    "PHONE_PATTERN",
    "EMAIL_PATTERN",
    "delivery_field_errors",
    "validate_delivery",
    # Ledger
    "SubmissionState",
    "Submission",
    "SubmissionLedger",
    # Orchestrator
    "CheckoutOrchestrator",
)
