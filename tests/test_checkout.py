"""Tests for checkout validation and order payload assembly."""

from decimal import Decimal

import pytest

from fooddesk.cart import compute_cart_view
from fooddesk.checkout import (
    CheckoutAssembler,
    CustomerDetails,
    cart_checkout_blockers,
    is_valid_email,
    is_valid_phone,
    place_order,
    recompute_total,
)
from fooddesk.errors import (
    CheckoutValidationError,
    EmptyCartError,
    HeadUpConfirmationRequiredError,
    ShopClosedError,
)
from fooddesk.models import CartEntry, CartLine
from fooddesk.scheduling import Schedule, ScheduleValidator
from fooddesk.shop_status import ShopStatus

DETAILS = CustomerDetails(
    customer_name="Somchai",
    customer_phone="+66812345678",
    customer_email="somchai@example.com",
    delivery_address="123 Bangna Soi 5",
    order_note="No chilli",
)


def line(qty, price="100", product_id="p1", name="Pad Thai", cost="40"):
    return CartLine(
        product_id=product_id, name=name, price=Decimal(price), qty=qty, unit_cost=Decimal(cost)
    )


@pytest.fixture
def assembler(clock):
    return CheckoutAssembler(clock, ScheduleValidator(clock, bulk_requires_next_day=False))


class TestFieldChecks:
    @pytest.mark.parametrize("phone", ["0812345678", "+66812345678", "12345678", " 0812345678 "])
    def test_valid_phones(self, phone):
        assert is_valid_phone(phone)

    @pytest.mark.parametrize("phone", ["", "1234567", "081-234-5678", "++6681234567", None])
    def test_invalid_phones(self, phone):
        assert not is_valid_phone(phone)

    def test_email(self):
        assert is_valid_email("jackson@gmail.com")
        assert not is_valid_email("jackson@gmail")
        assert not is_valid_email("jack son@gmail.com")
        assert not is_valid_email("")


class TestValidate:
    def test_valid_details(self, assembler, zones):
        quote = assembler.quote([line(2)], zones, DETAILS, Schedule())
        assert quote.errors == []
        assert quote.can_place
        assert quote.delivery_fee == Decimal("40")
        assert quote.zone.zone_name == "Bangna"

    def test_errors_in_form_order(self, assembler, zones):
        details = CustomerDetails(delivery_address="Nowhere")
        quote = assembler.quote([line(2)], zones, details, Schedule())
        assert [e.field for e in quote.errors] == [
            "customerName",
            "customerPhone",
            "customerEmail",
            "deliveryAddress",
        ]
        assert quote.delivery_fee is None
        assert not quote.can_place

    def test_bulk_without_schedule_blocked(self, assembler, zones):
        quote = assembler.quote([line(13)], zones, DETAILS, Schedule())
        assert quote.is_bulk
        assert [e.field for e in quote.errors] == ["schedule"]
        assert not quote.can_place

    def test_bulk_with_valid_schedule(self, assembler, zones):
        quote = assembler.quote([line(13)], zones, DETAILS, Schedule(True, "2024-01-02", "10:00"))
        assert quote.can_place

    def test_shown_schedule_validated_for_regular_orders(self, assembler, zones):
        quote = assembler.quote([line(1)], zones, DETAILS, Schedule(True, "2024-01-01", "10:00"))
        assert [e.field for e in quote.errors] == ["scheduleTime"]


class TestQuoteTotals:
    def test_total_includes_fee_and_discounts(self, assembler, zones):
        quote = assembler.quote([line(21)], zones, DETAILS, Schedule(True, "2024-01-02", "10:00"))
        assert quote.subtotal == Decimal("2100.00")
        assert quote.discount_total == Decimal("682.50")
        assert quote.total == Decimal("1457.50")

    def test_to_dict(self, assembler, zones):
        data = assembler.quote([line(2)], zones, DETAILS, Schedule()).to_dict()
        assert data["subtotal"] == 200
        assert data["deliveryFee"] == 40
        assert data["totalAmount"] == 240
        assert data["zoneName"] == "Bangna"
        assert data["canPlace"] is True


class TestAssemble:
    def test_payload_fields(self, assembler, zones):
        payload = assembler.assemble(
            [line(2), line(1, price="45", product_id="p2", name="Thai Tea", cost="10")],
            zones,
            DETAILS,
            Schedule(),
        )
        assert payload.customer_name == "Somchai"
        assert payload.scheduled_date_time is None
        assert payload.payment_status == "PAID"
        assert payload.status == "CONFIRMED"
        assert payload.subtotal == Decimal("245.00")
        assert payload.bulk_discount == Decimal("0.00")
        assert payload.delivery_fee == Decimal("40")
        assert payload.total_amount == Decimal("285.00")
        assert [(i.product_name, i.qty, i.unit_price, i.unit_cost_at_sale) for i in payload.items] == [
            ("Pad Thai", 2, Decimal("100"), Decimal("40")),
            ("Thai Tea", 1, Decimal("45"), Decimal("10")),
        ]

    def test_scheduled_instant(self, assembler, zones):
        payload = assembler.assemble([line(13)], zones, DETAILS, Schedule(True, "2024-01-02", "10:00"))
        assert payload.scheduled_date_time == "2024-01-02T03:00:00.000Z"

    def test_invalid_checkout_raises_with_all_errors(self, assembler, zones):
        with pytest.raises(CheckoutValidationError) as exc_info:
            assembler.assemble([line(13)], zones, CustomerDetails(), Schedule())
        fields = [e.field for e in exc_info.value.errors]
        assert fields[0] == "customerName"
        assert fields[-1] == "schedule"

    def test_empty_cart(self, assembler, zones):
        with pytest.raises(EmptyCartError):
            assembler.assemble([], zones, DETAILS, Schedule())

    @pytest.mark.parametrize(
        "lines",
        [
            [line(21)],
            [line(13, price="33.33"), line(3, price="19.99", product_id="p2")],
            [line(7, price="0.10"), line(5, price="0.20", product_id="p2")],
        ],
    )
    def test_recomputed_total_matches_payload(self, assembler, zones, lines):
        payload = assembler.assemble(lines, zones, DETAILS, Schedule(True, "2024-01-02", "10:00"))
        assert recompute_total(payload) == payload.total_amount
        assert payload.total_amount == payload.subtotal - payload.bulk_discount + payload.delivery_fee


class TestCartBlockers:
    def test_empty_cart(self, products):
        view = compute_cart_view([], products)
        blockers = cart_checkout_blockers(view, shop_open=True, head_up_confirmed=False)
        assert [type(b) for b in blockers] == [EmptyCartError]

    def test_bulk_needs_head_up(self, products):
        view = compute_cart_view([CartEntry(products[0].id, 13)], products)
        blockers = cart_checkout_blockers(view, shop_open=True, head_up_confirmed=False)
        assert [type(b) for b in blockers] == [HeadUpConfirmationRequiredError]
        assert blockers[0].product_names == ["Pad Thai"]
        assert cart_checkout_blockers(view, shop_open=True, head_up_confirmed=True) == []

    def test_closed_shop(self, products):
        view = compute_cart_view([CartEntry(products[0].id, 1)], products)
        blockers = cart_checkout_blockers(view, shop_open=False, head_up_confirmed=False)
        assert [type(b) for b in blockers] == [ShopClosedError]


class TestPlaceOrder:
    def test_places_order_in_store(self, seeded_store, clock, assembler, products):
        order = place_order(
            seeded_store,
            ShopStatus(seeded_store, clock),
            assembler,
            [line(2, product_id=products[0].id)],
            seeded_store.list_zones(),
            DETAILS,
            Schedule(),
        )
        stored = seeded_store.get_order(order.id)
        assert stored.total_amount == Decimal("240")
        assert stored.status == "CONFIRMED"

    def test_refused_when_shop_closed(self, seeded_store, clock, assembler):
        shop = ShopStatus(seeded_store, clock)
        shop.close("Back on Monday")

        with pytest.raises(ShopClosedError) as exc_info:
            place_order(
                seeded_store, shop, assembler, [line(1)], seeded_store.list_zones(), DETAILS, Schedule()
            )
        assert exc_info.value.message == "Back on Monday"
        assert seeded_store.list_orders() == []
