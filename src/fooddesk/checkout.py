"""Checkout: eligibility gates, totals and the order payload."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from .cart import CartView
from .clock import Clock
from .errors import (
    CheckoutValidationError,
    EmptyCartError,
    HeadUpConfirmationRequiredError,
    ShopClosedError,
    ValidationError,
)
from .models import (
    CONFIRMED,
    PAYMENT_PAID,
    CartLine,
    DeliveryZone,
    Order,
    OrderItem,
    OrderPayload,
)
from .pricing import PricingBreakdown, price_lines
from .scheduling import Schedule, ScheduleValidator
from .shop_status import ShopStatus
from .store import Store
from .utils import ZERO, money_to_json, quantize_money
from .zones import find_zone

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?\d{8,15}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_phone(phone: str | None) -> bool:
    """8-15 digits with an optional leading '+'."""
    return bool(phone) and PHONE_RE.match(phone.strip()) is not None


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_RE.match(email.strip()) is not None


@dataclass(frozen=True)
class CustomerDetails:
    """Contact and delivery details typed in at checkout."""

    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    delivery_address: str = ""
    order_note: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "deliveryAddress": self.delivery_address,
            "orderNote": self.order_note,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CustomerDetails":
        return cls(
            customer_name=data.get("customerName") or "",
            customer_phone=data.get("customerPhone") or "",
            customer_email=data.get("customerEmail") or "",
            delivery_address=data.get("deliveryAddress") or "",
            order_note=data.get("orderNote") or "",
        )


def cart_checkout_blockers(
    view: CartView, shop_open: bool, head_up_confirmed: bool
) -> list[Exception]:
    """
    Reasons the cart can't move on to checkout yet.

    Bulk lines (more than 12 of a dish) need the customer to tick the 1-day
    head-up box here. This gate is separate from the schedule requirement
    enforced later at checkout.
    """
    blockers: list[Exception] = []
    if view.is_empty:
        blockers.append(EmptyCartError())
    if not shop_open:
        blockers.append(ShopClosedError("The shop is closed."))
    bulk_names = [line.name for line in view.lines if line.is_bulk]
    if bulk_names and not head_up_confirmed:
        blockers.append(HeadUpConfirmationRequiredError(bulk_names))
    return blockers


@dataclass(frozen=True)
class CheckoutQuote:
    """Everything the checkout step shows before the order is placed."""

    pricing: PricingBreakdown
    delivery_fee: Decimal | None
    zone: DeliveryZone | None
    is_bulk: bool
    errors: list[ValidationError]

    @property
    def subtotal(self) -> Decimal:
        return quantize_money(self.pricing.raw_subtotal)

    @property
    def discount_total(self) -> Decimal:
        return quantize_money(self.pricing.discount_total)

    @property
    def total(self) -> Decimal:
        return self.subtotal - self.discount_total + (self.delivery_fee or ZERO)

    @property
    def can_place(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "pricing": self.pricing.to_dict(),
            "subtotal": money_to_json(self.subtotal),
            "bulkDiscount": money_to_json(self.discount_total),
            "deliveryFee": (
                money_to_json(self.delivery_fee) if self.delivery_fee is not None else None
            ),
            "zoneName": self.zone.zone_name if self.zone else None,
            "totalAmount": money_to_json(self.total),
            "isBulk": self.is_bulk,
            "canPlace": self.can_place,
            "errors": [{"field": e.field, "message": e.message} for e in self.errors],
        }


class CheckoutAssembler:
    """Validates checkout input and builds the immutable order payload."""

    def __init__(self, clock: Clock, schedule_validator: ScheduleValidator | None = None):
        self.clock = clock
        self.schedule_validator = schedule_validator or ScheduleValidator(clock)

    def validate(
        self,
        details: CustomerDetails,
        delivery_fee: Decimal | None,
        schedule: Schedule,
        bulk: bool,
    ) -> list[ValidationError]:
        """Checks run in the order the form shows them; any error blocks placement."""
        errors: list[ValidationError] = []
        if not details.customer_name.strip():
            errors.append(ValidationError("customerName", "Name is required."))
        if not is_valid_phone(details.customer_phone):
            errors.append(
                ValidationError(
                    "customerPhone", "Phone must be 8-15 digits (optional '+' allowed)."
                )
            )
        if not is_valid_email(details.customer_email):
            errors.append(
                ValidationError(
                    "customerEmail", "Please enter a valid email address (e.g. jackson@gmail.com)."
                )
            )
        if not details.delivery_address.strip():
            errors.append(ValidationError("deliveryAddress", "Delivery address is required."))
        elif delivery_fee is None:
            errors.append(
                ValidationError("deliveryAddress", "Sorry, this address is outside our delivery zones.")
            )
        errors.extend(self.schedule_validator.errors(schedule, bulk=bulk))
        return errors

    def quote(
        self,
        lines: Iterable[CartLine],
        zones: Iterable[DeliveryZone],
        details: CustomerDetails,
        schedule: Schedule,
    ) -> CheckoutQuote:
        pricing = price_lines(lines)
        zone = find_zone(details.delivery_address, zones)
        fee = zone.fee if zone is not None else None
        bulk = pricing.is_bulk
        return CheckoutQuote(
            pricing=pricing,
            delivery_fee=fee,
            zone=zone,
            is_bulk=bulk,
            errors=self.validate(details, fee, schedule, bulk),
        )

    def assemble(
        self,
        lines: Iterable[CartLine],
        zones: Iterable[DeliveryZone],
        details: CustomerDetails,
        schedule: Schedule,
    ) -> OrderPayload:
        """
        Build the order payload from snapshot prices and costs.

        Raises:
            EmptyCartError: If there are no lines.
            CheckoutValidationError: If any checkout check fails.
        """
        lines = list(lines)
        if not lines:
            raise EmptyCartError()

        quote = self.quote(lines, zones, details, schedule)
        if not quote.can_place:
            raise CheckoutValidationError(quote.errors)

        return OrderPayload(
            customer_name=details.customer_name.strip(),
            customer_phone=details.customer_phone.strip(),
            customer_email=details.customer_email.strip(),
            delivery_address=details.delivery_address.strip(),
            order_note=details.order_note.strip(),
            scheduled_date_time=self.schedule_validator.to_instant(schedule),
            items=[
                OrderItem(
                    product_id=line.product_id,
                    product_name=line.name,
                    qty=line.qty,
                    unit_price=line.price,
                    unit_cost_at_sale=line.unit_cost,
                )
                for line in lines
            ],
            subtotal=quote.subtotal,
            bulk_discount=quote.discount_total,
            delivery_fee=quote.delivery_fee,
            total_amount=quote.total,
            payment_status=PAYMENT_PAID,
            status=CONFIRMED,
        )


def recompute_total(payload: OrderPayload | Order) -> Decimal:
    """Recompute the total from an order's own items and stored delivery fee."""
    lines = [
        CartLine(
            product_id=item.product_id,
            name=item.product_name,
            price=item.unit_price,
            qty=item.qty,
            unit_cost=item.unit_cost_at_sale,
        )
        for item in payload.items
    ]
    pricing = price_lines(lines)
    return (
        quantize_money(pricing.raw_subtotal)
        - quantize_money(pricing.discount_total)
        + payload.delivery_fee
    )


def place_order(
    store: Store,
    shop_status: ShopStatus,
    assembler: CheckoutAssembler,
    lines: Iterable[CartLine],
    zones: Iterable[DeliveryZone],
    details: CustomerDetails,
    schedule: Schedule,
) -> Order:
    """
    Check the shop flag at the moment of placement, then submit the order.

    Payment is confirmed by hand (scan-to-pay), so the order is stored as PAID.

    Raises:
        ShopClosedError: If staff closed the shop.
        EmptyCartError, CheckoutValidationError: If checkout isn't valid.
        StoreError: If the store rejects the write.
    """
    state = shop_status.state()
    if not state.is_open:
        raise ShopClosedError(state.close_message)

    payload = assembler.assemble(lines, zones, details, schedule)
    order = store.create_order(payload)
    logger.info(
        "Placed order %s for %s (%d item(s), total %s)",
        order.id,
        order.customer_name,
        len(order.items),
        order.total_amount,
    )
    return order
