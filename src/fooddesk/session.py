"""A customer's storefront session: catalog, cart and checkout in one place."""

from __future__ import annotations

import logging
from typing import Any

from .cart import Cart, CartView
from .checkout import (
    CheckoutAssembler,
    CheckoutQuote,
    CustomerDetails,
    cart_checkout_blockers,
    place_order,
)
from .clock import Clock, SystemClock
from .errors import StoreError
from .models import DeliveryZone, Order, Product
from .pricing import PricingBreakdown, price_lines
from .scheduling import Schedule, ScheduleValidator
from .shop_status import ShopStatus
from .store import Store

logger = logging.getLogger(__name__)


class CustomerSession:
    """Holds one customer's cart together with the catalog it was priced from.

    Every derived figure (cart view, pricing, quote) is recomputed on each call
    from the current entries and catalog.
    """

    def __init__(
        self,
        store: Store,
        clock: Clock | None = None,
        shop_status: ShopStatus | None = None,
        schedule_validator: ScheduleValidator | None = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.shop_status = shop_status or ShopStatus(store, self.clock)
        self.assembler = CheckoutAssembler(self.clock, schedule_validator)
        self.cart = Cart(clock=self.clock)
        self.products: list[Product] = []
        self.zones: list[DeliveryZone] = []
        self.notice_shown_on: str | None = None

    def refresh_catalog(self) -> int:
        """
        Reload products and zones, then prune cart entries that went stale.

        Returns:
            Number of cart entries removed.
        """
        self.products = self.store.list_products()
        self.zones = self.store.list_zones()
        return self.cart.prune(self.products)

    def active_products(self) -> list[Product]:
        """Products shown on the menu (sold-out ones are shown but can't be added)."""
        return [p for p in self.products if p.is_active]

    # --- Cart ---

    def add_to_cart(self, product_id: str) -> bool:
        return self.cart.add(product_id, self.products)

    def update_qty(self, product_id: str, qty: Any) -> None:
        self.cart.update_qty(product_id, qty, self.products)

    def step(self, product_id: str, delta: int) -> None:
        self.cart.step(product_id, delta, self.products)

    def remove(self, product_id: str) -> None:
        self.cart.remove(product_id)

    def cart_view(self) -> CartView:
        return self.cart.view(self.products)

    def pricing(self) -> PricingBreakdown:
        return price_lines(self.cart_view().lines)

    @property
    def notice(self) -> str | None:
        return self.cart.notice

    def closure_notice(self) -> str | None:
        """The shop-closed message, once per day for this customer."""
        message, self.notice_shown_on = self.shop_status.closure_notice(self.notice_shown_on)
        return message

    # --- Checkout ---

    def checkout_blockers(self, head_up_confirmed: bool = False) -> list[Exception]:
        return cart_checkout_blockers(
            self.cart_view(), self.shop_status.is_open(), head_up_confirmed
        )

    def can_open_checkout(self, head_up_confirmed: bool = False) -> bool:
        return not self.checkout_blockers(head_up_confirmed)

    def ensure_can_open_checkout(self, head_up_confirmed: bool = False) -> None:
        """Raise the first reason the customer can't move on to checkout."""
        blockers = self.checkout_blockers(head_up_confirmed)
        if blockers:
            raise blockers[0]

    def quote(self, details: CustomerDetails, schedule: Schedule) -> CheckoutQuote:
        return self.assembler.quote(self.cart_view().lines, self.zones, details, schedule)

    def place_order(self, details: CustomerDetails, schedule: Schedule) -> Order:
        """
        Place the order and clear the cart.

        On any failure the cart is left as it was so the customer can retry.

        Raises:
            ShopClosedError: If the shop was closed in the meantime.
            EmptyCartError, CheckoutValidationError: If checkout isn't valid.
            StoreError: If the order couldn't be stored.
        """
        try:
            order = place_order(
                self.store,
                self.shop_status,
                self.assembler,
                self.cart_view().lines,
                self.zones,
                details,
                schedule,
            )
        except StoreError:
            logger.error("Order submission failed; cart kept for retry")
            raise
        self.cart.clear()
        return order
