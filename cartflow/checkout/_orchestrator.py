"""
CheckoutOrchestrator — three-step checkout over a frozen selection.

    COLLECTING_DELIVERY ──next()──▶ SELECTING_PAYMENT ──next()──▶ CONFIRMING
            ▲    │                        │    ▲                     │
            └────┼───────back()───────────┘    └──────back()─────────┤
                 │                                                   │
              back()                                       place_order(summary)
                 ▼                                                   ▼
              EXITED                                               PLACED

Side-effect ordering on place_order: submit first, and only after the
collaborator confirms a durable order are the submitted entries removed
from the cart. A failed submission leaves the cart untouched.
"""

from __future__ import annotations

import logging
import uuid

from combinators import lift as L
from kungfu import Result, Ok, Error

from cartflow._types import (
    CartEntry,
    CartError,
    CartErrors,
    DeliveryInfo,
    NextAction,
    ProductId,
)
from cartflow.cart import CartStore, subtotal_of, vat_of
from cartflow.checkout._ledger import SubmissionLedger
from cartflow.checkout._types import (
    CheckoutStep,
    CostSummary,
    Order,
    OrderGateway,
    OrderLine,
    OrderReceipt,
    OrderRequest,
    PaymentMethod,
)
from cartflow.checkout._validation import validate_delivery
from cartflow.inventory import InventoryValidator
from cartflow.settings import Settings
from cartflow.shipping import RushEligibility, ShippingCalculator

logger = logging.getLogger(__name__)


class CheckoutOrchestrator:
    """
    Drives one checkout attempt.

    Example:
        checkout = CheckoutOrchestrator(store, validator, shipping, orders)
        await checkout.begin()                     # freezes selection, checks stock
        await checkout.set_delivery(info)
        await checkout.next()                      # → SELECTING_PAYMENT
        await checkout.next()                      # → CONFIRMING
        match await checkout.summary():
            case Ok(summary):
                placed = await checkout.place_order(summary)
    """

    def __init__(
        self,
        store: CartStore,
        validator: InventoryValidator,
        shipping: ShippingCalculator,
        orders: OrderGateway,
        ledger: SubmissionLedger | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._validator = validator
        self._shipping = shipping
        self._orders = orders
        self._ledger = ledger or SubmissionLedger()
        self._settings = settings or Settings()

        self._key = uuid.uuid4().hex
        self._step = CheckoutStep.COLLECTING_DELIVERY
        self._item_ids: tuple[ProductId, ...] = ()
        self._stock_verified = False
        self._delivery = DeliveryInfo()
        self._eligibility: RushEligibility | None = None
        self._payment_method = PaymentMethod.VNPAY
        self._order: Order | None = None
        self._detached = False
        self.last_error: CartError | None = None

    # ───────────────────────────────────────────────────────────────────────────
    # State
    # ───────────────────────────────────────────────────────────────────────────

    @property
    def key(self) -> str:
        return self._key

    @property
    def step(self) -> CheckoutStep:
        return self._step

    @property
    def item_ids(self) -> tuple[ProductId, ...]:
        return self._item_ids

    @property
    def delivery(self) -> DeliveryInfo:
        return self._delivery

    @property
    def eligibility(self) -> RushEligibility | None:
        return self._eligibility

    @property
    def payment_method(self) -> PaymentMethod:
        return self._payment_method

    @property
    def order(self) -> Order | None:
        return self._order

    def detach(self) -> None:
        """Stop caring: answers arriving after this are discarded."""
        self._detached = True

    def _fail[T](self, error: CartError) -> Result[T, CartError]:
        self.last_error = error
        return Error(error)

    def _entries(self) -> tuple[CartEntry, ...]:
        """Current cart entries for the frozen ids; quantities/prices are live."""
        return tuple(
            entry
            for pid in self._item_ids
            if (entry := self._store.get(pid)) is not None
        )

    # ───────────────────────────────────────────────────────────────────────────
    # Entry
    # ───────────────────────────────────────────────────────────────────────────

    async def begin(self) -> Result[CheckoutStep, CartError]:
        """
        Freeze the current selection and gate entry on a completed stock check.

        On a shortfall the cart has already been clamped; the checkout exits
        back to the cart and begin() may be called again.
        """
        if self._detached:
            return self._fail(CartErrors.discarded("Checkout"))

        selected = self._store.selected_entries()
        if not selected:
            self._step = CheckoutStep.EXITED
            return self._fail(CartErrors.empty_selection())

        self._item_ids = tuple(e.product_id for e in selected)
        self._stock_verified = False
        result = await self._validator.check(selected)

        if self._detached:
            return self._fail(CartErrors.discarded("Inventory check"))

        if not result.success:
            self._step = CheckoutStep.EXITED
            failure = result.failure or CartErrors.stock(result.shortfalls)
            logger.warning("Checkout blocked by inventory check: %s", failure.message)
            return self._fail(failure)

        self._stock_verified = True
        self._step = CheckoutStep.COLLECTING_DELIVERY
        self.last_error = None
        logger.debug("Checkout %s started with %d items", self._key, len(self._item_ids))
        return Ok(self._step)

    # ───────────────────────────────────────────────────────────────────────────
    # Steps
    # ───────────────────────────────────────────────────────────────────────────

    async def set_delivery(self, info: DeliveryInfo) -> Result[DeliveryInfo, CartError]:
        """Store delivery info; is_rush_order comes back forced off if rush is not allowed."""
        if self._step is not CheckoutStep.COLLECTING_DELIVERY:
            return self._fail(
                CartErrors.conflict("Delivery details can only be changed on the delivery step")
            )
        gated, eligibility = await self._shipping.gate_delivery(info, self._entries())
        if self._detached:
            return self._fail(CartErrors.discarded("Rush eligibility check"))
        self._delivery = gated
        self._eligibility = eligibility
        return Ok(gated)

    def set_payment_method(self, method: PaymentMethod) -> None:
        self._payment_method = method

    async def next(self) -> Result[CheckoutStep, CartError]:
        match self._step:
            case CheckoutStep.COLLECTING_DELIVERY:
                return await self._leave_delivery()
            case CheckoutStep.SELECTING_PAYMENT:
                self._step = CheckoutStep.CONFIRMING
                return Ok(self._step)
            case CheckoutStep.CONFIRMING:
                return self._fail(
                    CartErrors.conflict("Confirm the order summary to place the order")
                )
            case _:
                return self._fail(
                    CartErrors.conflict(
                        "This checkout is finished", NextAction.RETURN_TO_CART
                    )
                )

    async def _leave_delivery(self) -> Result[CheckoutStep, CartError]:
        if not self._stock_verified:
            return self._fail(
                CartErrors.conflict(
                    "Stock has not been verified for this checkout",
                    NextAction.RETURN_TO_CART,
                )
            )

        match validate_delivery(self._delivery):
            case Error(e):
                return self._fail(e)
            case Ok(_):
                pass

        # Address or items may have changed since set_delivery().
        gated = await self.set_delivery(self._delivery)
        if isinstance(gated, Error):
            return gated

        self._step = CheckoutStep.SELECTING_PAYMENT
        self.last_error = None
        return Ok(self._step)

    def back(self) -> CheckoutStep:
        match self._step:
            case CheckoutStep.CONFIRMING:
                self._step = CheckoutStep.SELECTING_PAYMENT
            case CheckoutStep.SELECTING_PAYMENT:
                self._step = CheckoutStep.COLLECTING_DELIVERY
            case CheckoutStep.COLLECTING_DELIVERY:
                self._step = CheckoutStep.EXITED
        return self._step

    # ───────────────────────────────────────────────────────────────────────────
    # Confirmation
    # ───────────────────────────────────────────────────────────────────────────

    async def summary(self) -> Result[CostSummary, CartError]:
        """Recompute the cost summary from live cart entries. Never cached."""
        entries = self._entries()
        if not entries:
            return self._fail(CartErrors.empty_selection())

        delivery, eligibility = await self._shipping.gate_delivery(self._delivery, entries)
        quote = await self._shipping.quote(entries, delivery)
        if self._detached:
            return self._fail(CartErrors.discarded("Shipping fee calculation"))

        self._delivery = delivery
        self._eligibility = eligibility
        subtotal = subtotal_of(entries)
        return Ok(
            CostSummary(
                subtotal=subtotal,
                regular_fee=quote.regular_fee,
                rush_fee=quote.rush_fee,
                vat=vat_of(subtotal, self._settings.vat_divisor),
                total=subtotal + quote.regular_fee + quote.rush_fee,
                quote_confirmed=quote.confirmed,
            )
        )

    async def place_order(self, confirmed: CostSummary) -> Result[Order, CartError]:
        """
        Submit the order the user confirmed.

        Refuses when the freshly computed summary differs from `confirmed` or
        rests on a fallback shipping fee. At most one order is created per
        checkout: repeated or concurrent calls get the same order back.
        """
        if self._detached:
            return self._fail(CartErrors.discarded("Order submission"))
        if self._order is not None:
            return Ok(self._order)
        if self._step is not CheckoutStep.CONFIRMING:
            return self._fail(
                CartErrors.conflict("Review the order summary before placing the order")
            )

        owned, submission = await self._ledger.reserve(self._key)
        if not owned:
            logger.info("Checkout %s already submitted; awaiting outcome", self._key)
            return await submission.outcome()

        placed = await self._submit(confirmed)
        match placed:
            case Ok(order):
                await self._ledger.complete(self._key, order)
                if self._detached:
                    logger.warning("Order %s created after checkout was left", order.id)
                    return self._fail(CartErrors.discarded("Order submission"))
                return await self._commit(order)
            case Error(e):
                await self._ledger.fail(self._key, e)
                self.last_error = e
        return placed

    async def _commit(self, order: Order) -> Result[Order, CartError]:
        self._order = order
        self._step = CheckoutStep.PLACED
        self.last_error = None
        logger.info(
            "Placed order %s (%d lines, total %d)", order.id, len(order.lines), order.total
        )

        cleared = await self._store.remove_items(order.product_ids)
        if isinstance(cleared, Error):
            logger.warning("Order %s placed but cart cleanup failed", order.id)
        return Ok(order)

    async def _submit(self, confirmed: CostSummary) -> Result[Order, CartError]:
        fresh = await self.summary()
        match fresh:
            case Error(e):
                return Error(e)
            case Ok(cost):
                pass

        if cost != confirmed:
            return Error(
                CartErrors.conflict(
                    "Your order total changed. Please review the updated summary."
                )
            )
        if not cost.quote_confirmed:
            return Error(
                CartErrors.conflict(
                    "The shipping fee could not be confirmed. Please try again."
                )
            )

        lines = tuple(OrderLine.from_entry(e) for e in self._entries())
        request = OrderRequest(lines, self._delivery, self._payment_method, cost)

        answered = await L.catching_async(
            lambda: self._orders.submit(request),
            on_error=lambda e: CartErrors.unavailable("Placing your order", e),
        )
        match answered:
            case Error(e):
                logger.warning("Order submission failed: %s", e.message)
                return Error(e)
            case Ok(receipt):
                pass

        if not isinstance(receipt, OrderReceipt) or not receipt.order_id:
            logger.warning("Order submission returned no order id")
            return Error(CartErrors.invalid_response("Placing your order"))

        return Ok(
            Order(
                id=receipt.order_id,
                lines=lines,
                delivery=self._delivery,
                payment_method=self._payment_method,
                cost=cost,
                status=receipt.status,
            )
        )


__all__ = ("CheckoutOrchestrator",)
