"""Integration tests for CLI."""

import json
import os
import subprocess
import sys
from decimal import Decimal
from pathlib import Path

import pytest

from fooddesk.models import Order, OrderItem, OrderPayload

SRC_DIR = Path(__file__).resolve().parent.parent / "src"


def run_fooddesk(args: list[str], data_dir: Path) -> subprocess.CompletedProcess:
    """Run fooddesk CLI command against a data directory."""
    env = dict(os.environ)
    env["FOODDESK_DATA_DIR"] = str(data_dir)
    env["PYTHONIOENCODING"] = "utf-8"
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "fooddesk.cli"] + args,
        capture_output=True,
        text=True,
        env=env,
    )


@pytest.fixture
def data_dir(temp_dir):
    return temp_dir / "data"


class TestCLIIntegration:
    """Integration tests for CLI commands."""

    def test_no_command_prints_help(self, data_dir):
        result = run_fooddesk([], data_dir)
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()

    def test_shop_close_and_open(self, data_dir):
        result = run_fooddesk(["shop", "close", "--message", "Closed for Songkran"], data_dir)
        assert result.returncode == 0

        result = run_fooddesk(["shop", "status", "--json"], data_dir)
        assert json.loads(result.stdout) == {"isOpen": False, "closeMessage": "Closed for Songkran"}

        run_fooddesk(["shop", "open"], data_dir)
        result = run_fooddesk(["shop", "status"], data_dir)
        assert "OPEN" in result.stdout

    def test_zones_resolve(self, data_dir):
        result = run_fooddesk(["zones", "add", "Bangna", "--fee", "40", "-k", "Bangna, Bang Na"], data_dir)
        assert result.returncode == 0

        result = run_fooddesk(["zones", "resolve", "123 Bangna Soi 5"], data_dir)
        assert result.returncode == 0
        assert "Bangna: " in result.stdout
        assert "40.00" in result.stdout

        result = run_fooddesk(["zones", "resolve", "Nowhere"], data_dir)
        assert result.returncode == 1
        assert "Out of delivery zone" in result.stdout

    def test_quote(self, data_dir):
        run_fooddesk(["products", "add", "Pad Thai", "--price", "100"], data_dir)
        products = json.loads(run_fooddesk(["products", "list", "--json"], data_dir).stdout)
        product_id = products[0]["id"]

        result = run_fooddesk(["quote", f"{product_id}:21", "--json"], data_dir)
        assert result.returncode == 0
        data = json.loads(result.stdout)
        assert data["finalSubtotal"] == 1417.5
        assert data["needsHeadUpConfirm"] is True

    def test_orders_advance_and_cancel(self, data_dir):
        from fooddesk.store import FileStore

        payload = OrderPayload(
            customer_name="Somchai",
            customer_phone="0812345678",
            customer_email="s@example.com",
            delivery_address="Bangna",
            order_note="",
            scheduled_date_time=None,
            items=[OrderItem("p1", "Pad Thai", 1, Decimal("100"))],
            subtotal=Decimal("100"),
            bulk_discount=Decimal("0"),
            delivery_fee=Decimal("40"),
            total_amount=Decimal("140"),
            status="READY",
        )
        order: Order = FileStore(data_dir).create_order(payload)
        prefix = order.id[:8]

        result = run_fooddesk(["orders", "advance", prefix], data_dir)
        assert result.returncode == 0
        assert "READY -> COMPLETED" in result.stdout

        result = run_fooddesk(["orders", "advance", prefix], data_dir)
        assert "already COMPLETED" in result.stdout

        result = run_fooddesk(["orders", "cancel", prefix], data_dir)
        assert result.returncode == 1
        assert "Error:" in result.stderr

        result = run_fooddesk(["orders", "cancel", prefix, "--yes"], data_dir)
        assert result.returncode == 0
        assert FileStore(data_dir).list_orders() == []

    def test_unknown_order(self, data_dir):
        result = run_fooddesk(["orders", "advance", "missing"], data_dir)
        assert result.returncode == 1
        assert "Order not found" in result.stderr

    def test_staff_add_duplicate(self, data_dir):
        result = run_fooddesk(["staff", "add", "Nok", "nok@shop.co", "--password", "pw"], data_dir)
        assert result.returncode == 0
        result = run_fooddesk(["staff", "add", "Nok", "nok@shop.co", "--password", "pw"], data_dir)
        assert result.returncode == 1
        assert "already exists" in result.stderr

    def test_products_sold_out_by_prefix(self, data_dir):
        run_fooddesk(["products", "add", "Pad Thai", "--price", "100"], data_dir)
        products = json.loads(run_fooddesk(["products", "list", "--json"], data_dir).stdout)
        prefix = products[0]["id"][:8]

        result = run_fooddesk(["products", "sold-out", prefix], data_dir)
        assert result.returncode == 0
        assert "sold out" in result.stdout

        result = run_fooddesk(["products", "sold-out", prefix, "--off"], data_dir)
        assert "sold out" not in result.stdout

        result = run_fooddesk(["products", "sold-out", "zzzz"], data_dir)
        assert result.returncode == 1
        assert "Product not found" in result.stderr
