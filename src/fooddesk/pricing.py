"""Tiered bulk discounts for cart lines."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from . import config
from .models import CartLine
from .utils import ZERO, money_to_json

# (threshold, rate) pairs, checked top-down; quantity must be strictly greater
PER_DISH_TIERS = ((20, Decimal("0.25")), (12, Decimal("0.15")))
CART_TIERS = ((15, Decimal("0.10")), (10, Decimal("0.05")))


def _rate_for(quantity: int, tiers: tuple[tuple[int, Decimal], ...]) -> Decimal:
    for threshold, rate in tiers:
        if quantity > threshold:
            return rate
    return ZERO


def per_dish_rate(qty: int) -> Decimal:
    """Discount rate for a single line: >20 gets 25%, >12 gets 15%."""
    return _rate_for(qty, PER_DISH_TIERS)


def cart_rate(total_qty: int) -> Decimal:
    """Discount rate for the whole cart: >15 items gets 10%, >10 gets 5%."""
    return _rate_for(total_qty, CART_TIERS)


@dataclass(frozen=True)
class PricedLine:
    """A cart line with its per-dish discount applied."""

    line: CartLine
    per_dish_rate: Decimal
    per_dish_discount: Decimal

    @property
    def raw_line_total(self) -> Decimal:
        return self.line.line_total

    @property
    def after_per_dish_total(self) -> Decimal:
        return self.raw_line_total - self.per_dish_discount

    @property
    def requires_head_up(self) -> bool:
        return self.line.qty > config.BULK_LINE_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        result = self.line.to_dict()
        result.update(
            {
                "rawLineTotal": money_to_json(self.raw_line_total),
                "perDishRate": float(self.per_dish_rate),
                "perDishDiscount": money_to_json(self.per_dish_discount),
                "afterPerDishTotal": money_to_json(self.after_per_dish_total),
                "requiresHeadUp": self.requires_head_up,
            }
        )
        return result


@dataclass(frozen=True)
class PricingBreakdown:
    """Result of pricing a cart. All amounts are exact (unrounded) Decimals."""

    lines: list[PricedLine]
    total_qty: int
    raw_subtotal: Decimal
    per_dish_discount_total: Decimal
    subtotal_after_per_dish: Decimal
    cart_rate: Decimal
    cart_discount_total: Decimal

    @property
    def discount_total(self) -> Decimal:
        return self.per_dish_discount_total + self.cart_discount_total

    @property
    def final_subtotal(self) -> Decimal:
        return self.raw_subtotal - self.per_dish_discount_total - self.cart_discount_total

    @property
    def needs_head_up_confirm(self) -> bool:
        return any(pl.requires_head_up for pl in self.lines)

    @property
    def is_bulk(self) -> bool:
        return self.needs_head_up_confirm

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [pl.to_dict() for pl in self.lines],
            "totalQty": self.total_qty,
            "rawSubtotal": money_to_json(self.raw_subtotal),
            "perDishDiscountTotal": money_to_json(self.per_dish_discount_total),
            "subtotalAfterPerDish": money_to_json(self.subtotal_after_per_dish),
            "cartRate": float(self.cart_rate),
            "cartDiscountTotal": money_to_json(self.cart_discount_total),
            "discountTotal": money_to_json(self.discount_total),
            "finalSubtotal": money_to_json(self.final_subtotal),
            "needsHeadUpConfirm": self.needs_head_up_confirm,
        }


def price_lines(lines: Iterable[CartLine]) -> PricingBreakdown:
    """
    Apply per-dish then cart-level discounts.

    The cart rate applies to the subtotal after per-dish discounts, not to the
    raw subtotal, so the two steps must run in this order.
    """
    priced: list[PricedLine] = []
    for line in lines:
        rate = per_dish_rate(line.qty)
        priced.append(
            PricedLine(
                line=line,
                per_dish_rate=rate,
                per_dish_discount=line.line_total * rate,
            )
        )

    total_qty = sum(pl.line.qty for pl in priced)
    raw_subtotal = sum((pl.raw_line_total for pl in priced), ZERO)
    per_dish_total = sum((pl.per_dish_discount for pl in priced), ZERO)
    after_per_dish = raw_subtotal - per_dish_total

    rate = cart_rate(total_qty)
    cart_discount = after_per_dish * rate

    return PricingBreakdown(
        lines=priced,
        total_qty=total_qty,
        raw_subtotal=raw_subtotal,
        per_dish_discount_total=per_dish_total,
        subtotal_after_per_dish=after_per_dish,
        cart_rate=rate,
        cart_discount_total=cart_discount,
    )
