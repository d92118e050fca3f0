"""Staff-side order lifecycle: status progression, cancellation and order filters."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Iterable

from . import config
from .clock import Clock, SystemClock
from .errors import ConfirmationRequiredError, OrderNotFoundError, StoreError
from .models import CLOSED_STATUSES, COMPLETED, COOKING, CONFIRMED, READY, DeliveryZone, Order
from .store import Store
from .utils import ZERO, local_date, parse_instant
from .zones import zone_matches

logger = logging.getLogger(__name__)

ORDER_FLOW = (CONFIRMED, COOKING, READY, COMPLETED)

# Quick filters on the staff orders page
QUICK_TODAY = "TODAY"
QUICK_SCHEDULED = "SCHEDULED"
QUICK_BULK = "BULK"
QUICK_COMPLETED = "COMPLETED"
QUICK_FILTERS = (QUICK_TODAY, QUICK_SCHEDULED, QUICK_BULK, QUICK_COMPLETED)

SORT_NEWEST = "NEWEST"
SORT_OLDEST = "OLDEST"


def next_status(current: str) -> str:
    """One step forward in the flow; COMPLETED (or an unknown status) stays put."""
    if current not in ORDER_FLOW:
        return current
    idx = ORDER_FLOW.index(current)
    if idx == len(ORDER_FLOW) - 1:
        return current
    return ORDER_FLOW[idx + 1]


def advance(order: Order) -> Order:
    """Return the order moved one status forward (same order if already COMPLETED)."""
    nxt = next_status(order.status)
    if nxt == order.status:
        return order
    return dataclasses.replace(order, status=nxt)


def order_cost(order: Order) -> Decimal:
    """Cost of the ingredients at the time of sale."""
    return sum((item.unit_cost_at_sale * item.qty for item in order.items), ZERO)


def order_revenue(order: Order) -> Decimal:
    return order.total_amount - order_cost(order)


def is_scheduled(order: Order) -> bool:
    return bool(order.scheduled_date_time)


def is_bulk(order: Order) -> bool:
    return any(item.qty > config.BULK_LINE_THRESHOLD for item in order.items)


def is_open_order(order: Order) -> bool:
    return order.status not in CLOSED_STATUSES


def schedule_date(order: Order, tz: tzinfo) -> date | None:
    """Local calendar date the order is scheduled for, or None for ASAP."""
    if not order.scheduled_date_time:
        return None
    return local_date(order.scheduled_date_time, tz)


def created_date(order: Order, tz: tzinfo) -> date | None:
    if not order.created_at:
        return None
    return local_date(order.created_at, tz)


def is_due_today(order: Order, clock: Clock) -> bool:
    """
    Orders the kitchen has to deal with today.

    Scheduled orders count on their scheduled date; ASAP orders count on the
    day they were placed. Completed orders never count.
    """
    if not is_open_order(order):
        return False
    tz = clock.now().tzinfo
    today = clock.today()
    if is_scheduled(order):
        return schedule_date(order, tz) == today
    return created_date(order, tz) == today


def format_schedule(order: Order, tz: tzinfo) -> str:
    """Local "YYYY-MM-DD HH:MM" of the scheduled slot, or "ASAP"."""
    if not order.scheduled_date_time:
        return "ASAP"
    local = parse_instant(order.scheduled_date_time).astimezone(tz)
    return local.strftime("%Y-%m-%d %H:%M")


def filter_orders(
    orders: Iterable[Order],
    clock: Clock,
    quick: str | None = None,
    status: str | None = None,
    zone: DeliveryZone | None = None,
    product_id: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    query: str | None = None,
    sort: str = SORT_NEWEST,
) -> list[Order]:
    """
    Apply the staff order-list filters.

    The result is sorted by creation time, with unfinished orders first and
    completed ones after them.
    """
    tz = clock.now().tzinfo
    result = list(orders)

    if quick == QUICK_TODAY:
        result = [o for o in result if is_due_today(o, clock)]
    elif quick == QUICK_SCHEDULED:
        result = [o for o in result if is_open_order(o) and is_scheduled(o)]
    elif quick == QUICK_BULK:
        result = [o for o in result if is_open_order(o) and is_bulk(o)]
    elif quick == QUICK_COMPLETED:
        result = [o for o in result if o.status == COMPLETED]

    if status:
        result = [o for o in result if o.status == status]
    if zone is not None:
        result = [o for o in result if zone_matches(zone, o.delivery_address)]
    if product_id:
        result = [o for o in result if any(i.product_id == product_id for i in o.items)]
    if date_from is not None or date_to is not None:
        result = [o for o in result if _created_between(o, tz, date_from, date_to)]

    if query:
        needle = query.strip().lower()
        result = [o for o in result if _matches_query(o, needle)]

    result.sort(key=_created_key, reverse=(sort != SORT_OLDEST))

    unfinished = [o for o in result if o.status != COMPLETED]
    finished = [o for o in result if o.status == COMPLETED]
    return unfinished + finished


def _created_key(order: Order) -> datetime:
    if not order.created_at:
        return datetime.min.replace(tzinfo=timezone.utc)
    return parse_instant(order.created_at)


def _created_between(
    order: Order, tz: tzinfo, date_from: date | None, date_to: date | None
) -> bool:
    created = created_date(order, tz)
    if created is None:
        return False
    if date_from is not None and created < date_from:
        return False
    if date_to is not None and created > date_to:
        return False
    return True


def _matches_query(order: Order, needle: str) -> bool:
    if needle in order.id.lower():
        return True
    if needle in order.customer_name.lower():
        return True
    items = " ".join(i.product_name.lower() for i in order.items)
    return needle in items


class OrderBoard:
    """The staff view of orders, kept as a snapshot refreshed after each write.

    A failed store call leaves the snapshot as it was; the caller reports the
    error and the user retries by hand.
    """

    def __init__(self, store: Store, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()
        self.orders: list[Order] = []

    def refresh(self) -> list[Order]:
        self.orders = self.store.list_orders()
        return self.orders

    def get(self, order_id: str) -> Order:
        for order in self.orders:
            if order.id == order_id:
                return order
        raise OrderNotFoundError(order_id)

    def advance(self, order_id: str) -> Order:
        """
        Move an order one step along the flow.

        Raises:
            OrderNotFoundError: If the order isn't on the board.
            StoreError: If the status update fails (board left unchanged).
        """
        order = self.get(order_id)
        nxt = next_status(order.status)
        if nxt == order.status:
            return order

        try:
            updated = self.store.update_order_status(order_id, nxt)
        except StoreError:
            logger.error("Failed to move order %s to %s", order_id, nxt)
            raise
        logger.info("Order %s: %s -> %s", order_id, order.status, nxt)
        self.refresh()
        return updated

    def cancel(self, order_id: str, confirmed: bool = False) -> None:
        """
        Cancel an order by deleting it together with its payment record.

        Raises:
            ConfirmationRequiredError: Unless confirmed=True.
            StoreError: If the delete fails (board left unchanged).
        """
        if not confirmed:
            raise ConfirmationRequiredError("cancel order")
        self.get(order_id)
        try:
            self.store.delete_order(order_id)
        except StoreError:
            logger.error("Failed to cancel order %s", order_id)
            raise
        logger.info("Order %s cancelled and deleted", order_id)
        self.refresh()

    def due_today(self) -> list[Order]:
        return filter_orders(self.orders, self.clock, quick=QUICK_TODAY)
