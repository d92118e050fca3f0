"""Tests for dashboard aggregation."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from fooddesk.dashboard import Dashboard, group_key, infer_category, week_of_month_key
from fooddesk.models import Order, OrderItem, OrderPayload


def completed_order(created_at, items, status="COMPLETED", address="Bangna", total=None):
    order_items = [
        OrderItem(product_id=pid, product_name=name, qty=qty, unit_price=Decimal(price))
        for pid, name, qty, price in items
    ]
    subtotal = sum((i.unit_price * i.qty for i in order_items), Decimal("0"))
    payload = OrderPayload(
        customer_name="C",
        customer_phone="0812345678",
        customer_email="c@d.co",
        delivery_address=address,
        order_note="",
        scheduled_date_time=None,
        items=order_items,
        subtotal=subtotal,
        bulk_discount=Decimal("0"),
        delivery_fee=Decimal("0"),
        total_amount=total if total is not None else subtotal,
        status=status,
    )
    return Order.create(payload, created_at=created_at)


@pytest.fixture
def orders(products):
    pad_thai, tea, rice = products
    return [
        # 2024-01-01 09:00 and 10:00 local
        completed_order("2024-01-01T02:00:00.000Z", [(pad_thai.id, "Pad Thai", 2, "100")]),
        completed_order("2024-01-01T03:00:00.000Z", [(tea.id, "Thai Tea", 5, "45")]),
        # The day before
        completed_order("2023-12-31T03:00:00.000Z", [(rice.id, "Fried Rice", 1, "80")]),
        # Not completed: never counted
        completed_order("2024-01-01T04:00:00.000Z", [(pad_thai.id, "Pad Thai", 9, "100")], status="READY"),
    ]


class TestKeys:
    def test_week_of_month(self):
        # 2024-01-01 is a Monday, so the first week runs Sun 31 Dec - Sat 6 Jan
        assert week_of_month_key(datetime(2024, 1, 6)) == "2024-01-W1"
        assert week_of_month_key(datetime(2024, 1, 7)) == "2024-01-W2"
        assert week_of_month_key(datetime(2024, 1, 31)) == "2024-01-W5"

    def test_group_keys(self):
        moment = datetime(2024, 3, 5, 14, 45)
        assert group_key(moment, "today") == "2024-03-05 14:00"
        assert group_key(moment, "daily") == "2024-03-05 14:00"
        assert group_key(moment, "weekly") == "2024-03-05"
        assert group_key(moment, "monthly") == "2024-03-W2"
        assert group_key(moment, "yearly") == "2024-03"

    def test_infer_category(self):
        assert infer_category("Thai Milk Tea") == "Drinks"
        assert infer_category("Basil Rice") == "Rice"
        assert infer_category("Fudge Brownie") == "Dessert"
        assert infer_category("Som Tam") == "Other"


class TestSummarize:
    def test_today(self, clock, orders, products):
        summary = Dashboard(clock).summarize(orders, products)

        assert summary.total_orders == 2
        assert summary.total_sales == Decimal("425")
        # Current cost to make: Pad Thai 40, Thai Tea 10
        assert summary.total_cost == Decimal("130")
        assert summary.total_revenue == Decimal("295")
        assert summary.best_seller == "Thai Tea"
        assert summary.sales_trend == [
            ("2024-01-01 09:00", Decimal("200")),
            ("2024-01-01 10:00", Decimal("225")),
        ]
        assert summary.sales_by_category == [("Drinks", Decimal("225")), ("Noodles", Decimal("200"))]

    def test_monthly_with_date_range(self, clock, orders, products):
        dashboard = Dashboard(clock)
        summary = dashboard.summarize(orders, products, group_by="monthly")
        assert summary.total_orders == 3

        summary = dashboard.summarize(
            orders, products, group_by="monthly", date_from=date(2024, 1, 1)
        )
        assert summary.total_orders == 2

    def test_uncategorised_product_falls_back_to_name(self, clock, orders, products):
        summary = Dashboard(clock).summarize(orders, products, group_by="yearly")
        categories = dict(summary.sales_by_category)
        assert categories["Rice"] == Decimal("80")

    def test_product_filter_hides_breakdowns(self, clock, orders, products):
        summary = Dashboard(clock).summarize(
            orders, products, group_by="yearly", product_id=products[0].id
        )
        assert summary.total_orders == 1
        assert summary.best_seller is None
        assert summary.sales_by_category is None

    def test_deleted_product_costs_nothing(self, clock, orders, products):
        summary = Dashboard(clock).summarize(orders, products[1:])
        assert summary.total_cost == Decimal("50")

    def test_empty(self, clock, products):
        summary = Dashboard(clock).summarize([], products)
        assert summary.total_orders == 0
        assert summary.best_seller == "-"
        assert summary.to_dict()["totalSales"] == 0
