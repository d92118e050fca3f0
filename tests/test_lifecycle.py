"""Tests for the order lifecycle and staff order filters."""

from decimal import Decimal

import pytest

from fooddesk.errors import ConfirmationRequiredError, OrderNotFoundError, StoreError
from fooddesk.lifecycle import (
    QUICK_BULK,
    QUICK_COMPLETED,
    QUICK_SCHEDULED,
    QUICK_TODAY,
    SORT_OLDEST,
    OrderBoard,
    advance,
    filter_orders,
    format_schedule,
    is_due_today,
    next_status,
    order_cost,
    order_revenue,
)
from fooddesk.models import Order, OrderItem, OrderPayload


def make_payload(
    name="Somchai",
    address="123 Bangna Soi 5",
    qty=2,
    product_id="p1",
    product_name="Pad Thai",
    scheduled=None,
    status="CONFIRMED",
):
    return OrderPayload(
        customer_name=name,
        customer_phone="0812345678",
        customer_email="a@b.co",
        delivery_address=address,
        order_note="",
        scheduled_date_time=scheduled,
        items=[
            OrderItem(
                product_id=product_id,
                product_name=product_name,
                qty=qty,
                unit_price=Decimal("100"),
                unit_cost_at_sale=Decimal("40"),
            )
        ],
        subtotal=Decimal(100 * qty),
        bulk_discount=Decimal("0"),
        delivery_fee=Decimal("40"),
        total_amount=Decimal(100 * qty + 40),
        status=status,
    )


def make_order(created_at="2024-01-01T03:00:00.000Z", **kwargs):
    return Order.create(make_payload(**kwargs), created_at=created_at)


class TestStateMachine:
    def test_next_status(self):
        assert next_status("CONFIRMED") == "COOKING"
        assert next_status("COOKING") == "READY"
        assert next_status("READY") == "COMPLETED"
        assert next_status("COMPLETED") == "COMPLETED"
        assert next_status("UNKNOWN") == "UNKNOWN"

    def test_advance_ready_then_noop(self):
        order = make_order(status="READY")
        completed = advance(order)
        assert completed.status == "COMPLETED"
        assert advance(completed) is completed
        assert order.status == "READY"


class TestMetrics:
    def test_cost_and_revenue(self):
        order = make_order(qty=3)
        assert order_cost(order) == Decimal("120")
        assert order_revenue(order) == Decimal("220")


class TestDueToday:
    def test_unscheduled_created_today(self, clock):
        assert is_due_today(make_order(), clock)

    def test_unscheduled_created_yesterday(self, clock):
        # 2023-12-31 16:00 UTC is 23:00 local on the 31st
        assert not is_due_today(make_order(created_at="2023-12-31T16:00:00.000Z"), clock)

    def test_local_day_boundary(self, clock):
        # 2023-12-31 17:30 UTC is already 00:30 on the 1st in Bangkok
        assert is_due_today(make_order(created_at="2023-12-31T17:30:00.000Z"), clock)

    def test_scheduled_for_today_placed_earlier(self, clock):
        order = make_order(
            created_at="2023-12-30T03:00:00.000Z", scheduled="2024-01-01T10:00:00.000Z"
        )
        assert is_due_today(order, clock)

    def test_scheduled_for_tomorrow_placed_today(self, clock):
        order = make_order(scheduled="2024-01-02T03:00:00.000Z")
        assert not is_due_today(order, clock)

    def test_completed_excluded(self, clock):
        assert not is_due_today(make_order(status="COMPLETED"), clock)


class TestFilterOrders:
    @pytest.fixture
    def orders(self):
        return [
            make_order(name="Alice", created_at="2024-01-01T01:00:00.000Z"),
            make_order(name="Bob", created_at="2024-01-01T02:00:00.000Z", status="COMPLETED"),
            make_order(
                name="Carol",
                created_at="2024-01-01T03:00:00.000Z",
                qty=13,
                scheduled="2024-01-02T03:00:00.000Z",
            ),
            make_order(
                name="Dan",
                created_at="2023-12-20T03:00:00.000Z",
                address="Sukhumvit 24",
                product_id="p2",
                product_name="Thai Tea",
            ),
        ]

    def names(self, orders):
        return [o.customer_name for o in orders]

    def test_default_sort_newest_with_completed_last(self, orders, clock):
        assert self.names(filter_orders(orders, clock)) == ["Carol", "Alice", "Dan", "Bob"]

    def test_sort_oldest(self, orders, clock):
        assert self.names(filter_orders(orders, clock, sort=SORT_OLDEST)) == [
            "Dan",
            "Alice",
            "Carol",
            "Bob",
        ]

    def test_quick_filters(self, orders, clock):
        assert self.names(filter_orders(orders, clock, quick=QUICK_TODAY)) == ["Alice"]
        assert self.names(filter_orders(orders, clock, quick=QUICK_SCHEDULED)) == ["Carol"]
        assert self.names(filter_orders(orders, clock, quick=QUICK_BULK)) == ["Carol"]
        assert self.names(filter_orders(orders, clock, quick=QUICK_COMPLETED)) == ["Bob"]

    def test_zone_and_product(self, orders, clock, zones):
        assert self.names(filter_orders(orders, clock, zone=zones[1])) == ["Dan"]
        assert self.names(filter_orders(orders, clock, product_id="p2")) == ["Dan"]

    def test_search(self, orders, clock):
        assert self.names(filter_orders(orders, clock, query="thai tea")) == ["Dan"]
        assert self.names(filter_orders(orders, clock, query="ALI")) == ["Alice"]
        carol = orders[2]
        assert filter_orders(orders, clock, query=carol.id[:8]) == [carol]


class TestFormatSchedule:
    def test_asap(self, clock):
        assert format_schedule(make_order(), clock.now().tzinfo) == "ASAP"

    def test_local_time(self, clock):
        order = make_order(scheduled="2024-01-02T03:00:00.000Z")
        assert format_schedule(order, clock.now().tzinfo) == "2024-01-02 10:00"


class TestOrderBoard:
    def test_advance_persists(self, store, clock):
        order = store.create_order(make_payload(status="READY"))
        board = OrderBoard(store, clock)
        board.refresh()

        assert board.advance(order.id).status == "COMPLETED"
        assert store.get_order(order.id).status == "COMPLETED"

        # Advancing a completed order changes nothing
        assert board.advance(order.id).status == "COMPLETED"

    def test_advance_failure_leaves_board_unchanged(self, store, clock, monkeypatch):
        order = store.create_order(make_payload())
        board = OrderBoard(store, clock)
        board.refresh()

        def fail(*args, **kwargs):
            raise StoreError("update order", "connection refused")

        monkeypatch.setattr(store, "update_order_status", fail)
        with pytest.raises(StoreError):
            board.advance(order.id)
        assert board.get(order.id).status == "CONFIRMED"

    def test_cancel_requires_confirmation(self, store, clock):
        order = store.create_order(make_payload())
        board = OrderBoard(store, clock)
        board.refresh()

        with pytest.raises(ConfirmationRequiredError):
            board.cancel(order.id)
        assert len(store.list_orders()) == 1

        board.cancel(order.id, confirmed=True)
        assert store.list_orders() == []
        with pytest.raises(OrderNotFoundError):
            board.get(order.id)

    def test_due_today(self, store, clock):
        store.create_order(make_payload(name="Today"), created_at="2024-01-01T03:00:00.000Z")
        store.create_order(make_payload(name="Old"), created_at="2023-12-01T03:00:00.000Z")
        board = OrderBoard(store, clock)
        board.refresh()
        assert [o.customer_name for o in board.due_today()] == ["Today"]
