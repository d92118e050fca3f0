"""Customer cart: entries owned by one session, merged with the live catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from . import config
from .clock import Clock, SystemClock
from .models import CartEntry, CartLine, Product
from .utils import ZERO, money_to_json, safe_int

logger = logging.getLogger(__name__)

Catalog = Mapping[str, Product]


def index_catalog(products: Iterable[Product] | Catalog) -> dict[str, Product]:
    """Index products by ID (accepts an already-indexed mapping)."""
    if isinstance(products, Mapping):
        return dict(products)
    return {p.id: p for p in products}


@dataclass(frozen=True)
class CartView:
    """Visible cart lines plus the entries that had to be dropped."""

    lines: list[CartLine]
    dropped: list[str] = field(default_factory=list)  # product IDs

    @property
    def cart_count(self) -> int:
        return sum(line.qty for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        """Pre-discount total of the visible lines."""
        return sum((line.line_total for line in self.lines), ZERO)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "cartCount": self.cart_count,
            "subtotal": money_to_json(self.subtotal),
            "dropped": list(self.dropped),
        }


def compute_cart_view(
    entries: Iterable[CartEntry], catalog: Iterable[Product] | Catalog
) -> CartView:
    """
    Merge raw entries with the current catalog.

    Entries whose product is missing, inactive or sold out are left out of the
    view and reported in `dropped`. Nothing here is cached: call it again
    whenever entries or the catalog change.
    """
    products = index_catalog(catalog)
    lines: list[CartLine] = []
    dropped: list[str] = []

    for entry in entries:
        product = products.get(entry.product_id)
        if product is None or not product.is_available:
            dropped.append(entry.product_id)
            continue
        lines.append(
            CartLine(
                product_id=entry.product_id,
                name=product.name,
                price=product.price,
                qty=entry.qty,
                image_url=product.image_url,
                unit_cost=product.cost_to_make,
            )
        )

    return CartView(lines=lines, dropped=dropped)


@dataclass
class CartNotice:
    """A transient message shown to the customer until it expires."""

    message: str
    expires_at: datetime

    def is_visible(self, now: datetime) -> bool:
        return now < self.expires_at


class Cart:
    """Cart entries for one customer session.

    Mutations never raise for unavailable products: adding one is a silent
    no-op and stale entries are pruned with a one-off notice.
    """

    def __init__(
        self,
        entries: Iterable[CartEntry] | None = None,
        clock: Clock | None = None,
        notice_seconds: float = config.CART_NOTICE_SECONDS,
    ):
        self._entries: list[CartEntry] = [
            CartEntry(product_id=e.product_id, qty=e.qty) for e in entries or []
        ]
        self._clock = clock or SystemClock()
        self._notice_seconds = notice_seconds
        self._notice: CartNotice | None = None
        self._subscribers: list[Callable[[Cart], None]] = []

    @property
    def entries(self) -> list[CartEntry]:
        """A copy of the current entries."""
        return [CartEntry(product_id=e.product_id, qty=e.qty) for e in self._entries]

    def subscribe(self, callback: Callable[["Cart"], None]) -> Callable[[], None]:
        """
        Register a callback run after every mutation.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _changed(self) -> None:
        for callback in list(self._subscribers):
            callback(self)

    def _find(self, product_id: str) -> CartEntry | None:
        for entry in self._entries:
            if entry.product_id == product_id:
                return entry
        return None

    def view(self, catalog: Iterable[Product] | Catalog) -> CartView:
        return compute_cart_view(self._entries, catalog)

    def add(self, product_id: str, catalog: Iterable[Product] | Catalog) -> bool:
        """
        Add one unit of a product.

        Returns:
            True if the cart changed, False if the product can't be bought.
        """
        product = index_catalog(catalog).get(product_id)
        if product is None or not product.is_available:
            return False

        entry = self._find(product_id)
        if entry is not None:
            entry.qty += 1
        else:
            self._entries.append(CartEntry(product_id=product_id, qty=1))
        self._changed()
        return True

    def update_qty(
        self, product_id: str, qty: Any, catalog: Iterable[Product] | Catalog
    ) -> None:
        """
        Set the quantity of an entry.

        An unavailable product is removed whatever quantity was asked for. The
        requested quantity is coerced to a finite integer; zero or less removes
        the entry.
        """
        product = index_catalog(catalog).get(product_id)
        if product is None or not product.is_available:
            self.remove(product_id)
            return

        entry = self._find(product_id)
        if entry is None:
            return

        entry.qty = max(0, safe_int(qty))
        self._entries = [e for e in self._entries if e.qty > 0]
        self._changed()

    def step(
        self, product_id: str, delta: int, catalog: Iterable[Product] | Catalog
    ) -> None:
        """Stepper control: +/- buttons never take a line below 1."""
        entry = self._find(product_id)
        if entry is None:
            return
        self.update_qty(product_id, max(1, entry.qty + delta), catalog)

    def remove(self, product_id: str) -> None:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.product_id != product_id]
        if len(self._entries) != before:
            self._changed()

    def clear(self) -> None:
        if self._entries:
            self._entries = []
            self._changed()

    def prune(self, catalog: Iterable[Product] | Catalog) -> int:
        """
        Drop entries whose product is no longer available.

        Raises a customer notice when at least one entry was dropped.

        Returns:
            Number of entries removed.
        """
        products = index_catalog(catalog)
        kept = []
        for entry in self._entries:
            product = products.get(entry.product_id)
            if product is not None and product.is_available:
                kept.append(entry)
        removed = len(self._entries) - len(kept)
        if removed == 0:
            return 0

        self._entries = kept
        logger.info("Removed %d unavailable item(s) from cart", removed)
        self._raise_notice(config.CART_NOTICE_MESSAGE)
        self._changed()
        return removed

    def _raise_notice(self, message: str) -> None:
        # A new notice replaces the old one and restarts its timer
        expires_at = self._clock.now() + timedelta(seconds=self._notice_seconds)
        self._notice = CartNotice(message=message, expires_at=expires_at)

    @property
    def notice(self) -> str | None:
        """The current notice message, or None once it has expired."""
        if self._notice is None:
            return None
        if not self._notice.is_visible(self._clock.now()):
            self._notice = None
            return None
        return self._notice.message
