"""Sales dashboard figures computed from completed orders."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable

from .clock import Clock
from .models import COMPLETED, DeliveryZone, Order, Product
from .utils import ZERO, money_to_json, parse_instant
from .zones import zone_matches

GROUP_TODAY = "today"
GROUP_DAILY = "daily"
GROUP_WEEKLY = "weekly"
GROUP_MONTHLY = "monthly"
GROUP_YEARLY = "yearly"
GROUP_BY_CHOICES = (GROUP_TODAY, GROUP_DAILY, GROUP_WEEKLY, GROUP_MONTHLY, GROUP_YEARLY)


def infer_category(product_name: str) -> str:
    """Fallback category for items whose product no longer exists."""
    n = (product_name or "").lower()
    if "tea" in n or "drink" in n:
        return "Drinks"
    if "rice" in n:
        return "Rice"
    if "brownie" in n or "dessert" in n:
        return "Dessert"
    return "Other"


def week_of_month_key(moment: datetime) -> str:
    """e.g. 2024-01-W2; weeks start on Sunday."""
    first = moment.date().replace(day=1)
    offset = (first.weekday() + 1) % 7  # Sunday = 0
    week = (moment.day + offset - 1) // 7 + 1
    return f"{moment.year}-{moment.month:02d}-W{week}"


def group_key(moment: datetime, group_by: str) -> str:
    """Trend bucket for a local datetime."""
    if group_by in (GROUP_TODAY, GROUP_DAILY):
        return f"{moment.date().isoformat()} {moment.hour:02d}:00"
    if group_by == GROUP_WEEKLY:
        return moment.date().isoformat()
    if group_by == GROUP_MONTHLY:
        return week_of_month_key(moment)
    return f"{moment.year}-{moment.month:02d}"


@dataclass(frozen=True)
class DashboardSummary:
    total_orders: int
    total_sales: Decimal
    total_cost: Decimal
    best_seller: str | None  # None when hidden by a product filter
    sales_trend: list[tuple[str, Decimal]]
    sales_by_category: list[tuple[str, Decimal]] | None

    @property
    def total_revenue(self) -> Decimal:
        return self.total_sales - self.total_cost

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalOrders": self.total_orders,
            "totalSales": money_to_json(self.total_sales),
            "totalCost": money_to_json(self.total_cost),
            "totalRevenue": money_to_json(self.total_revenue),
            "bestSeller": self.best_seller,
            "salesTrend": [{"k": k, "v": money_to_json(v)} for k, v in self.sales_trend],
            "salesByCategory": (
                [{"name": n, "val": money_to_json(v)} for n, v in self.sales_by_category]
                if self.sales_by_category is not None
                else None
            ),
        }


class Dashboard:
    """Aggregates completed orders for the staff dashboard."""

    def __init__(self, clock: Clock):
        self.clock = clock

    def _local(self, iso: str) -> datetime:
        return parse_instant(iso).astimezone(self.clock.now().tzinfo)

    def filter(
        self,
        orders: Iterable[Order],
        group_by: str = GROUP_TODAY,
        zone: DeliveryZone | None = None,
        product_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Order]:
        """Completed orders matching the filters. The date range is ignored for "today"."""
        result = [o for o in orders if o.status == COMPLETED and o.created_at]

        if group_by == GROUP_TODAY:
            today = self.clock.today()
            result = [o for o in result if self._local(o.created_at).date() == today]

        if zone is not None:
            result = [o for o in result if zone_matches(zone, o.delivery_address)]

        if product_id:
            result = [o for o in result if any(i.product_id == product_id for i in o.items)]

        if group_by != GROUP_TODAY:
            if date_from is not None:
                result = [o for o in result if self._local(o.created_at).date() >= date_from]
            if date_to is not None:
                result = [o for o in result if self._local(o.created_at).date() <= date_to]

        return result

    def total_cost(self, orders: Iterable[Order], products: Iterable[Product]) -> Decimal:
        """Cost valued at each product's current cost-to-make (0 if deleted)."""
        costs = {p.id: p.cost_to_make for p in products}
        total = ZERO
        for order in orders:
            for item in order.items:
                total += costs.get(item.product_id, ZERO) * item.qty
        return total

    def best_seller(self, orders: Iterable[Order]) -> str:
        qty_by_name: dict[str, int] = {}
        for order in orders:
            for item in order.items:
                qty_by_name[item.product_name] = qty_by_name.get(item.product_name, 0) + item.qty

        best, best_qty = "-", -1
        for name, qty in qty_by_name.items():
            if qty > best_qty:
                best, best_qty = name, qty
        return best

    def sales_trend(self, orders: Iterable[Order], group_by: str) -> list[tuple[str, Decimal]]:
        buckets: dict[str, Decimal] = {}
        for order in orders:
            key = group_key(self._local(order.created_at), group_by)
            buckets[key] = buckets.get(key, ZERO) + order.total_amount
        return sorted(buckets.items(), key=lambda kv: kv[0])

    def sales_by_category(
        self, orders: Iterable[Order], products: Iterable[Product]
    ) -> list[tuple[str, Decimal]]:
        categories = {p.id: p.category for p in products if p.category}
        totals: dict[str, Decimal] = {}
        for order in orders:
            for item in order.items:
                cat = categories.get(item.product_id) or infer_category(item.product_name)
                totals[cat] = totals.get(cat, ZERO) + item.unit_price * item.qty
        return sorted(totals.items(), key=lambda kv: kv[1], reverse=True)

    def summarize(
        self,
        orders: Iterable[Order],
        products: Iterable[Product],
        group_by: str = GROUP_TODAY,
        zone: DeliveryZone | None = None,
        product_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> DashboardSummary:
        products = list(products)
        selected = self.filter(orders, group_by, zone, product_id, date_from, date_to)
        hide_breakdowns = bool(product_id)

        return DashboardSummary(
            total_orders=len(selected),
            total_sales=sum((o.total_amount for o in selected), ZERO),
            total_cost=self.total_cost(selected, products),
            best_seller=None if hide_breakdowns else self.best_seller(selected),
            sales_trend=self.sales_trend(selected, group_by),
            sales_by_category=None if hide_breakdowns else self.sales_by_category(selected, products),
        )
