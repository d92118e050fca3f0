"""Command-line interface for fooddesk."""

import argparse
import json
import logging
import sys

from . import __version__
from .auth import AuthService
from .cart import compute_cart_view
from .clock import SystemClock
from .dashboard import GROUP_BY_CHOICES, GROUP_TODAY, Dashboard
from .errors import FooddeskError, OrderNotFoundError, ProductNotFoundError, ValidationError
from .lifecycle import (
    QUICK_FILTERS,
    SORT_NEWEST,
    SORT_OLDEST,
    OrderBoard,
    filter_orders,
    format_schedule,
)
from .models import CartEntry, DeliveryZone, Order, Product
from .pricing import price_lines
from .shop_status import ShopStatus
from .store import FileStore
from .utils import format_currency, safe_int, to_decimal
from .zones import find_zone, parse_keywords


def get_store() -> FileStore:
    """Get the store for the configured data directory."""
    return FileStore()


def _resolve_order(board: OrderBoard, order_id: str) -> Order:
    """Find an order by full ID or unique prefix."""
    matches = [o for o in board.orders if o.id.startswith(order_id)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ValidationError("order_id", f"Ambiguous order ID prefix: {order_id}")
    raise OrderNotFoundError(order_id)


def _resolve_product(store: FileStore, product_id: str) -> Product:
    """Find a product by full ID or unique prefix."""
    matches = [p for p in store.list_products() if p.id.startswith(product_id)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ValidationError("product_id", f"Ambiguous product ID prefix: {product_id}")
    raise ProductNotFoundError(product_id)


def format_order(order: Order, board: OrderBoard) -> str:
    tz = board.clock.now().tzinfo
    items = ", ".join(f"{i.product_name} x{i.qty}" for i in order.items)
    return (
        f"{order.id[:8]}  {order.status:<9}  {format_currency(order.total_amount):>10}  "
        f"{format_schedule(order, tz):<16}  {order.customer_name}: {items}"
    )


def format_product(product: Product) -> str:
    flags = []
    if not product.is_active:
        flags.append("inactive")
    if product.is_sold_out:
        flags.append("sold out")
    suffix = f" ({', '.join(flags)})" if flags else ""
    return f"{product.id[:8]}  {product.name}  {format_currency(product.price)}{suffix}"


def format_zone(zone: DeliveryZone) -> str:
    status = "" if zone.is_active else " (inactive)"
    keywords = ", ".join(zone.area_keywords) or "-"
    return f"{zone.id[:8]}  {zone.zone_name}  {format_currency(zone.fee)}{status}  [{keywords}]"


# --- Shop ---


def cmd_shop_status(args: argparse.Namespace) -> int:
    """Show whether the shop is open."""
    try:
        state = ShopStatus(get_store()).state()
        if args.json:
            print(json.dumps({"isOpen": state.is_open, "closeMessage": state.close_message}))
        elif state.is_open:
            print("Shop is OPEN")
        else:
            print("Shop is CLOSED")
            print(f"Message: {state.close_message}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_shop_open(args: argparse.Namespace) -> int:
    try:
        ShopStatus(get_store()).open()
        print("Shop is now OPEN")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_shop_close(args: argparse.Namespace) -> int:
    try:
        state = ShopStatus(get_store()).close(args.message)
        print("Shop is now CLOSED")
        print(f"Message: {state.close_message}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Products ---


def cmd_products_list(args: argparse.Namespace) -> int:
    try:
        products = get_store().list_products()
        if args.json:
            print(json.dumps([p.to_dict() for p in products], indent=2, ensure_ascii=False))
            return 0
        if not products:
            print("No products found.")
            return 0
        print(f"Products ({len(products)}):")
        for product in products:
            print(f"  {format_product(product)}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_add(args: argparse.Namespace) -> int:
    try:
        product = Product.create(
            name=args.name,
            price=to_decimal(args.price),
            cost_to_make=to_decimal(args.cost),
            category=args.category or "",
        )
        get_store().create_product(product)
        print(f"Added product: {product.id}")
        print(f"  {format_product(product)}")
        return 0

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_products_sold_out(args: argparse.Namespace) -> int:
    """Mark a product sold out (or back in stock with --off)."""
    try:
        store = get_store()
        product = _resolve_product(store, args.product_id)
        product = store.update_product(product.id, {"isSoldOut": not args.off})
        print(format_product(product))
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Delivery zones ---


def cmd_zones_list(args: argparse.Namespace) -> int:
    try:
        zones = get_store().list_zones()
        if not zones:
            print("No delivery zones found.")
            return 0
        print(f"Delivery zones ({len(zones)}):")
        for zone in zones:
            print(f"  {format_zone(zone)}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_zones_add(args: argparse.Namespace) -> int:
    try:
        zone = DeliveryZone.create(
            zone_name=args.name,
            fee=to_decimal(args.fee),
            area_keywords=parse_keywords(args.keywords),
        )
        get_store().create_zone(zone)
        print(f"Added delivery zone: {zone.id}")
        print(f"  {format_zone(zone)}")
        return 0

    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_zones_resolve(args: argparse.Namespace) -> int:
    """Print the delivery fee for an address; exit 1 when out of zone."""
    try:
        zone = find_zone(args.address, get_store().list_zones())
        if zone is None:
            print("Out of delivery zone")
            return 1
        print(f"{zone.zone_name}: {format_currency(zone.fee)}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Orders ---


def cmd_orders_list(args: argparse.Namespace) -> int:
    try:
        board = OrderBoard(get_store())
        board.refresh()
        orders = filter_orders(
            board.orders,
            board.clock,
            quick=args.quick,
            status=args.status,
            query=args.query,
            sort=args.sort,
        )
        if args.json:
            print(json.dumps([o.to_dict() for o in orders], indent=2, ensure_ascii=False))
            return 0
        if not orders:
            print("No orders found.")
            return 0
        print(f"Orders ({len(orders)}):")
        for order in orders:
            print(f"  {format_order(order, board)}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_advance(args: argparse.Namespace) -> int:
    try:
        board = OrderBoard(get_store())
        board.refresh()
        order = _resolve_order(board, args.order_id)
        previous = order.status
        updated = board.advance(order.id)
        if updated.status == previous:
            print(f"Order {order.id[:8]} is already {previous}")
        else:
            print(f"Order {order.id[:8]}: {previous} -> {updated.status}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_orders_cancel(args: argparse.Namespace) -> int:
    """Cancel (permanently delete) an order."""
    try:
        board = OrderBoard(get_store())
        board.refresh()
        order = _resolve_order(board, args.order_id)
        board.cancel(order.id, confirmed=args.yes)
        print(f"Cancelled order {order.id[:8]} ({order.customer_name})")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Pricing ---


def _parse_cart_arg(text: str) -> CartEntry:
    product_id, _, qty = text.partition(":")
    return CartEntry(product_id=product_id, qty=max(1, safe_int(qty or 1)))


def cmd_quote(args: argparse.Namespace) -> int:
    """Price a cart given as PRODUCT_ID:QTY pairs."""
    try:
        entries = [_parse_cart_arg(item) for item in args.items]
        view = compute_cart_view(entries, get_store().list_products())
        pricing = price_lines(view.lines)

        if args.json:
            print(json.dumps(pricing.to_dict(), indent=2, ensure_ascii=False))
            return 0

        for pl in pricing.lines:
            print(
                f"  {pl.line.name} x{pl.line.qty}  {format_currency(pl.raw_line_total)}"
                f"  -{format_currency(pl.per_dish_discount)}"
            )
        for product_id in view.dropped:
            print(f"  (skipped unavailable product {product_id})")
        print(f"Subtotal:       {format_currency(pricing.raw_subtotal)}")
        print(f"Per-dish off:   {format_currency(pricing.per_dish_discount_total)}")
        print(f"Cart off:       {format_currency(pricing.cart_discount_total)}")
        print(f"Total:          {format_currency(pricing.final_subtotal)}")
        if pricing.needs_head_up_confirm:
            print("Note: more than 12 of a dish needs 1-day advance notice.")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


# --- Staff ---


def cmd_staff_add(args: argparse.Namespace) -> int:
    try:
        user = AuthService(get_store()).register(
            args.name, args.email, args.password, role=args.role
        )
        print(f"Added staff user: {user.email} ({user.role})")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_dashboard(args: argparse.Namespace) -> int:
    try:
        store = get_store()
        dashboard = Dashboard(SystemClock())
        summary = dashboard.summarize(
            store.list_orders(), store.list_products(), group_by=args.group_by
        )
        if args.json:
            print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))
            return 0
        print(f"Orders:       {summary.total_orders}")
        print(f"Sales:        {format_currency(summary.total_sales)}")
        print(f"Cost:         {format_currency(summary.total_cost)}")
        print(f"Revenue:      {format_currency(summary.total_revenue)}")
        print(f"Best seller:  {summary.best_seller}")
        if summary.sales_trend:
            print()
            for key, value in summary.sales_trend:
                print(f"  {key:<18} {format_currency(value)}")
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server."""
    try:
        import uvicorn

        store = get_store()
        print("Starting fooddesk API server...")
        print(f"Data directory: {store.data_dir}")
        print(f"API docs: http://{args.host}:{args.port}/docs")
        print()

        # When reload is enabled, uvicorn requires the app as an import string
        app_target = "fooddesk.api:app" if args.reload else None
        if app_target is None:
            from .api import app
            app_target = app

        uvicorn.run(
            app_target,
            host=args.host,
            port=args.port,
            reload=args.reload,
        )
        return 0

    except FooddeskError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fooddesk",
        description="Storefront and back office for a small food delivery shop.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # shop
    shop_parser = subparsers.add_parser("shop", help="Show or change the shop open/closed flag")
    shop_subparsers = shop_parser.add_subparsers(dest="shop_command")
    shop_status_parser = shop_subparsers.add_parser("status", help="Show shop status")
    shop_status_parser.add_argument("--json", action="store_true", help="Output as JSON")
    shop_subparsers.add_parser("open", help="Open the shop")
    shop_close_parser = shop_subparsers.add_parser("close", help="Close the shop")
    shop_close_parser.add_argument("--message", "-m", help="Message shown to customers")

    # products
    products_parser = subparsers.add_parser("products", help="Manage menu products")
    products_subparsers = products_parser.add_subparsers(dest="products_command")
    products_list_parser = products_subparsers.add_parser("list", help="List products")
    products_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    products_add_parser = products_subparsers.add_parser("add", help="Add a product")
    products_add_parser.add_argument("name", help="Product name")
    products_add_parser.add_argument("--price", required=True, help="Unit price")
    products_add_parser.add_argument("--cost", default="0", help="Cost to make (default: 0)")
    products_add_parser.add_argument("--category", help="Category")
    sold_out_parser = products_subparsers.add_parser("sold-out", help="Mark a product sold out")
    sold_out_parser.add_argument("product_id", help="Product ID (or prefix)")
    sold_out_parser.add_argument("--off", action="store_true", help="Mark back in stock")

    # zones
    zones_parser = subparsers.add_parser("zones", help="Manage delivery zones")
    zones_subparsers = zones_parser.add_subparsers(dest="zones_command")
    zones_subparsers.add_parser("list", help="List delivery zones")
    zones_add_parser = zones_subparsers.add_parser("add", help="Add a delivery zone")
    zones_add_parser.add_argument("name", help="Zone name")
    zones_add_parser.add_argument("--fee", required=True, help="Flat delivery fee")
    zones_add_parser.add_argument(
        "--keywords", "-k", default="", help="Comma-separated address keywords"
    )
    zones_resolve_parser = zones_subparsers.add_parser(
        "resolve", help="Resolve the delivery fee for an address"
    )
    zones_resolve_parser.add_argument("address", help="Delivery address")

    # orders
    orders_parser = subparsers.add_parser("orders", help="Work the order board")
    orders_subparsers = orders_parser.add_subparsers(dest="orders_command")
    orders_list_parser = orders_subparsers.add_parser("list", help="List orders")
    orders_list_parser.add_argument("--quick", choices=QUICK_FILTERS, help="Quick filter")
    orders_list_parser.add_argument("--status", help="Filter by status")
    orders_list_parser.add_argument("--query", "-q", help="Search ID, customer or dish")
    orders_list_parser.add_argument(
        "--sort", choices=[SORT_NEWEST, SORT_OLDEST], default=SORT_NEWEST
    )
    orders_list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    orders_advance_parser = orders_subparsers.add_parser(
        "advance", help="Move an order to its next status"
    )
    orders_advance_parser.add_argument("order_id", help="Order ID (or prefix)")
    orders_cancel_parser = orders_subparsers.add_parser(
        "cancel", help="Cancel and permanently delete an order"
    )
    orders_cancel_parser.add_argument("order_id", help="Order ID (or prefix)")
    orders_cancel_parser.add_argument(
        "--yes", "-y", action="store_true", help="Confirm the permanent delete"
    )

    # quote
    quote_parser = subparsers.add_parser("quote", help="Price a cart")
    quote_parser.add_argument("items", nargs="+", help="PRODUCT_ID:QTY pairs")
    quote_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # staff
    staff_parser = subparsers.add_parser("staff", help="Manage staff users")
    staff_subparsers = staff_parser.add_subparsers(dest="staff_command")
    staff_add_parser = staff_subparsers.add_parser("add", help="Add a staff user")
    staff_add_parser.add_argument("name", help="Display name")
    staff_add_parser.add_argument("email", help="Login email")
    staff_add_parser.add_argument("--password", required=True, help="Login password")
    staff_add_parser.add_argument("--role", default="staff", help="Role (default: staff)")

    # dashboard
    dashboard_parser = subparsers.add_parser("dashboard", help="Show sales figures")
    dashboard_parser.add_argument(
        "--group-by", choices=GROUP_BY_CHOICES, default=GROUP_TODAY
    )
    dashboard_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument(
        "--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)"
    )
    serve_parser.add_argument(
        "--port", "-p", type=int, default=8000, help="Port to bind to (default: 8000)"
    )
    serve_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    return parser


GROUP_COMMANDS = {
    "shop": ("shop_command", {
        "status": cmd_shop_status,
        "open": cmd_shop_open,
        "close": cmd_shop_close,
    }),
    "products": ("products_command", {
        "list": cmd_products_list,
        "add": cmd_products_add,
        "sold-out": cmd_products_sold_out,
    }),
    "zones": ("zones_command", {
        "list": cmd_zones_list,
        "add": cmd_zones_add,
        "resolve": cmd_zones_resolve,
    }),
    "orders": ("orders_command", {
        "list": cmd_orders_list,
        "advance": cmd_orders_advance,
        "cancel": cmd_orders_cancel,
    }),
    "staff": ("staff_command", {
        "add": cmd_staff_add,
    }),
}


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    # Handle subcommand groups
    if args.command in GROUP_COMMANDS:
        dest, handlers = GROUP_COMMANDS[args.command]
        sub = getattr(args, dest, None)
        if not sub:
            parser.parse_args([args.command, "--help"])
            return 0
        return handlers[sub](args)

    commands = {
        "quote": cmd_quote,
        "dashboard": cmd_dashboard,
        "serve": cmd_serve,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
