"""FastAPI REST API for the fooddesk storefront and back office."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .auth import AuthService
from .cart import compute_cart_view
from .checkout import CheckoutAssembler, CustomerDetails, cart_checkout_blockers, place_order
from .clock import Clock, SystemClock
from .dashboard import GROUP_BY_CHOICES, GROUP_TODAY, Dashboard
from .errors import (
    AuthenticationError,
    CheckoutValidationError,
    ConfirmationRequiredError,
    EmptyCartError,
    FooddeskError,
    HeadUpConfirmationRequiredError,
    InvalidSchemaVersionError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    ShopClosedError,
    StoreError,
    ValidationError,
    ZoneNotFoundError,
)
from .lifecycle import SORT_NEWEST, OrderBoard, filter_orders, format_schedule, next_status
from .models import CartEntry, DeliveryZone, Product
from .scheduling import Schedule, ScheduleValidator
from .shop_status import ShopStatus
from .store import FileStore
from .utils import money_to_json
from .zones import find_zone

logger = logging.getLogger(__name__)


# --- Pydantic Schemas ---


class CamelModel(BaseModel):
    """Request body using the camelCase keys of the wire format."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductCreateRequest(CamelModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    cost_to_make: Decimal = Field(default=Decimal("0"), ge=0)
    category: str = ""
    is_active: bool = True
    is_sold_out: bool = False
    image_url: str = ""
    ingredients: list[str] = Field(default_factory=list)
    description: str = ""


class ProductUpdateRequest(CamelModel):
    """Partial update; only fields present in the body are changed."""

    name: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    cost_to_make: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[str] = None
    is_active: Optional[bool] = None
    is_sold_out: Optional[bool] = None
    image_url: Optional[str] = None
    ingredients: Optional[list[str]] = None
    description: Optional[str] = None


class ZoneCreateRequest(CamelModel):
    zone_name: str = Field(..., min_length=1)
    fee: Decimal = Field(..., ge=0)
    area_keywords: list[str] = Field(default_factory=list)
    is_active: bool = True


class ZoneUpdateRequest(CamelModel):
    zone_name: Optional[str] = None
    fee: Optional[Decimal] = Field(default=None, ge=0)
    area_keywords: Optional[list[str]] = None
    is_active: Optional[bool] = None


class CartEntrySchema(CamelModel):
    product_id: str
    qty: int = Field(default=1, ge=1)


class CustomerDetailsSchema(CamelModel):
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    delivery_address: str = ""
    order_note: str = ""


class ScheduleSchema(BaseModel):
    show_schedule: bool = Field(default=False, alias="showSchedule")
    schedule_date: str = Field(default="", alias="scheduleDate")
    schedule_time: str = Field(default="09:00", alias="scheduleTime")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutRequest(CamelModel):
    """Cart contents plus checkout form, as submitted by the storefront."""

    items: list[CartEntrySchema] = Field(default_factory=list)
    details: CustomerDetailsSchema = Field(default_factory=CustomerDetailsSchema)
    schedule: ScheduleSchema = Field(default_factory=ScheduleSchema)
    head_up_confirmed: bool = False


class DeliveryFeeRequest(CamelModel):
    delivery_address: str = ""


class OrderStatusUpdateRequest(BaseModel):
    status: str


class ShopStatusUpdateRequest(CamelModel):
    is_open: bool
    close_message: Optional[str] = None


class ClosureNoticeRequest(CamelModel):
    shown_on: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class ErrorResponse(BaseModel):
    detail: str
    error_type: str


# --- Helper Functions ---


def get_store() -> FileStore:
    """Get the store for the configured data directory."""
    return FileStore()


def get_clock() -> Clock:
    """Get the shop-local clock."""
    return SystemClock()


def _to_details(schema: CustomerDetailsSchema) -> CustomerDetails:
    return CustomerDetails(
        customer_name=schema.customer_name,
        customer_phone=schema.customer_phone,
        customer_email=schema.customer_email,
        delivery_address=schema.delivery_address,
        order_note=schema.order_note,
    )


def _to_schedule(schema: ScheduleSchema) -> Schedule:
    return Schedule(
        show=schema.show_schedule, date=schema.schedule_date, time=schema.schedule_time
    )


def _to_entries(items: list[CartEntrySchema]) -> list[CartEntry]:
    return [CartEntry(product_id=i.product_id, qty=i.qty) for i in items]


def _zone_or_none(store: FileStore, zone_id: Optional[str]) -> Optional[DeliveryZone]:
    return store.get_zone(zone_id) if zone_id else None


app = FastAPI(
    title="fooddesk API",
    description="REST API for the fooddesk storefront and staff back office",
    version=__version__,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    CheckoutValidationError: 400,
    EmptyCartError: 400,
    HeadUpConfirmationRequiredError: 400,
    ConfirmationRequiredError: 400,
    AuthenticationError: 401,
    ProductNotFoundError: 404,
    ZoneNotFoundError: 404,
    OrderNotFoundError: 404,
    ShopClosedError: 409,
    InvalidStatusTransitionError: 409,
    InvalidSchemaVersionError: 500,
    StoreError: 503,
}


@app.exception_handler(FooddeskError)
async def fooddesk_error_handler(request: Request, exc: FooddeskError) -> JSONResponse:
    """Map FooddeskError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, CheckoutValidationError):
        content["errors"] = [{"field": e.field, "message": e.message} for e in exc.errors]
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=content)


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """
    Health check endpoint.

    Reports whether the store can be read.
    """
    store = get_store()
    try:
        return {
            "status": "ok",
            "product_count": len(store.list_products()),
            "order_count": len(store.list_orders()),
        }
    except FooddeskError as e:
        return {
            "status": "error",
            "detail": str(e),
        }


# --- Product Endpoints ---


@app.get("/api/products")
def list_products(active_only: bool = Query(default=False)):
    """List products; active_only hides inactive ones (storefront menu)."""
    products = get_store().list_products()
    if active_only:
        products = [p for p in products if p.is_active]
    return {"products": [p.to_dict() for p in products], "count": len(products)}


@app.post("/api/products", status_code=201)
def create_product(request: ProductCreateRequest):
    product = Product.create(
        name=request.name.strip(),
        price=request.price,
        cost_to_make=request.cost_to_make,
        category=request.category,
        is_active=request.is_active,
        is_sold_out=request.is_sold_out,
        image_url=request.image_url,
        ingredients=request.ingredients,
        description=request.description,
    )
    return get_store().create_product(product).to_dict()


@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    return get_store().get_product(product_id).to_dict()


@app.put("/api/products/{product_id}")
def update_product(product_id: str, request: ProductUpdateRequest):
    updates = request.model_dump(by_alias=True, exclude_unset=True)
    return get_store().update_product(product_id, updates).to_dict()


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str):
    return get_store().delete_product(product_id).to_dict()


# --- Delivery Zone Endpoints ---


@app.get("/api/delivery-zones")
def list_zones():
    zones = get_store().list_zones()
    return {"zones": [z.to_dict() for z in zones], "count": len(zones)}


@app.post("/api/delivery-zones", status_code=201)
def create_zone(request: ZoneCreateRequest):
    zone = DeliveryZone.create(
        zone_name=request.zone_name.strip(),
        fee=request.fee,
        area_keywords=[k.strip() for k in request.area_keywords if k.strip()],
        is_active=request.is_active,
    )
    return get_store().create_zone(zone).to_dict()


@app.put("/api/delivery-zones/{zone_id}")
def update_zone(zone_id: str, request: ZoneUpdateRequest):
    updates = request.model_dump(by_alias=True, exclude_unset=True)
    if "areaKeywords" in updates and updates["areaKeywords"] is not None:
        updates["areaKeywords"] = [k.strip() for k in updates["areaKeywords"] if k.strip()]
    return get_store().update_zone(zone_id, updates).to_dict()


@app.delete("/api/delivery-zones/{zone_id}")
def delete_zone(zone_id: str):
    return get_store().delete_zone(zone_id).to_dict()


@app.post("/api/delivery-fee")
def delivery_fee(request: DeliveryFeeRequest):
    """Resolve the delivery fee for an address (null fee means out of zone)."""
    zone = find_zone(request.delivery_address, get_store().list_zones())
    return {
        "deliveryAddress": request.delivery_address,
        "zoneName": zone.zone_name if zone else None,
        "fee": money_to_json(zone.fee) if zone else None,
        "inZone": zone is not None,
    }


# --- Cart / Checkout Endpoints ---


@app.post("/api/cart/quote")
def quote_cart(request: CheckoutRequest):
    """
    Price a cart and validate the checkout form without placing the order.

    Entries whose product is missing, inactive or sold out are dropped and
    listed under cart.dropped.
    """
    store = get_store()
    clock = get_clock()
    products = store.list_products()
    view = compute_cart_view(_to_entries(request.items), products)

    assembler = CheckoutAssembler(clock, ScheduleValidator(clock))
    quote = assembler.quote(
        view.lines, store.list_zones(), _to_details(request.details), _to_schedule(request.schedule)
    )
    blockers = cart_checkout_blockers(
        view, ShopStatus(store, clock).is_open(), request.head_up_confirmed
    )
    return {
        "cart": view.to_dict(),
        "quote": quote.to_dict(),
        "blockers": [{"error_type": type(b).__name__, "detail": str(b)} for b in blockers],
    }


# --- Order Endpoints ---


@app.get("/api/orders")
def list_orders(
    quick: Optional[str] = Query(default=None),
    status: Optional[str] = Query(default=None),
    zone_id: Optional[str] = Query(default=None),
    product_id: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    q: Optional[str] = Query(default=None),
    sort: str = Query(default=SORT_NEWEST),
):
    """List orders with the staff filters applied (unfinished orders first)."""
    store = get_store()
    clock = get_clock()
    orders = filter_orders(
        store.list_orders(),
        clock,
        quick=quick,
        status=status,
        zone=_zone_or_none(store, zone_id),
        product_id=product_id,
        date_from=date_from,
        date_to=date_to,
        query=q,
        sort=sort,
    )
    tz = clock.now().tzinfo
    result = []
    for order in orders:
        data = order.to_dict()
        data["scheduleLabel"] = format_schedule(order, tz)
        result.append(data)
    return {"orders": result, "count": len(result)}


@app.post("/api/orders", status_code=201)
def create_order(request: CheckoutRequest):
    """
    Place an order from a cart.

    Totals are recomputed server-side from the live catalog; the client only
    sends product IDs and quantities.
    """
    store = get_store()
    clock = get_clock()
    shop_status = ShopStatus(store, clock)
    view = compute_cart_view(_to_entries(request.items), store.list_products())

    blockers = cart_checkout_blockers(view, shop_status.is_open(), request.head_up_confirmed)
    if blockers:
        blocker = blockers[0]
        if isinstance(blocker, ShopClosedError):
            raise ShopClosedError(shop_status.close_message())
        raise blocker

    order = place_order(
        store,
        shop_status,
        CheckoutAssembler(clock, ScheduleValidator(clock)),
        view.lines,
        store.list_zones(),
        _to_details(request.details),
        _to_schedule(request.schedule),
    )
    return order.to_dict()


@app.get("/api/orders/{order_id}")
def get_order(order_id: str):
    return get_store().get_order(order_id).to_dict()


@app.put("/api/orders/{order_id}")
def update_order_status(order_id: str, request: OrderStatusUpdateRequest):
    """
    Change an order's status.

    Only the next step of CONFIRMED -> COOKING -> READY -> COMPLETED is
    accepted; asking for the current status is a no-op.
    """
    store = get_store()
    order = store.get_order(order_id)
    if request.status == order.status:
        return order.to_dict()
    if request.status != next_status(order.status):
        raise InvalidStatusTransitionError(order.status, request.status)
    return store.update_order_status(order_id, request.status).to_dict()


@app.post("/api/orders/{order_id}/advance")
def advance_order(order_id: str):
    """Move an order one step forward (no-op once COMPLETED)."""
    board = OrderBoard(get_store(), get_clock())
    board.refresh()
    return board.advance(order_id).to_dict()


@app.delete("/api/orders/{order_id}")
def cancel_order(order_id: str, confirm: bool = Query(default=False)):
    """
    Cancel an order by deleting it permanently.

    Requires confirm=true.
    """
    board = OrderBoard(get_store(), get_clock())
    board.refresh()
    board.cancel(order_id, confirmed=confirm)
    return {"deleted": order_id}


# --- Shop Status Endpoints ---


@app.get("/api/shop-status")
def get_shop_status():
    state = ShopStatus(get_store(), get_clock()).state()
    return {"isOpen": state.is_open, "closeMessage": state.close_message, "updatedAt": state.updated_at}


@app.put("/api/shop-status")
def update_shop_status(request: ShopStatusUpdateRequest):
    state = ShopStatus(get_store(), get_clock()).set_open(request.is_open, request.close_message)
    return {"isOpen": state.is_open, "closeMessage": state.close_message, "updatedAt": state.updated_at}


@app.post("/api/shop-status/notice")
def closure_notice(request: Optional[ClosureNoticeRequest] = None):
    """
    The closure message to show a customer; null if open or already shown today.

    The client keeps the returned shownOn and sends it back on its next visit.
    """
    message, shown_on = ShopStatus(get_store(), get_clock()).closure_notice(
        request.shown_on if request else None
    )
    return {"message": message, "shownOn": shown_on}


# --- Staff Endpoints ---


@app.post("/api/staff/login")
def staff_login(request: LoginRequest):
    user = AuthService(get_store()).authenticate(request.email, request.password)
    return user.to_public_dict()


@app.get("/api/dashboard")
def dashboard(
    group_by: str = Query(default=GROUP_TODAY),
    zone_id: Optional[str] = Query(default=None),
    product_id: Optional[str] = Query(default=None),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
):
    """Sales figures over completed orders."""
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError("group_by", f"Must be one of: {', '.join(GROUP_BY_CHOICES)}")
    store = get_store()
    summary = Dashboard(get_clock()).summarize(
        store.list_orders(),
        store.list_products(),
        group_by=group_by,
        zone=_zone_or_none(store, zone_id),
        product_id=product_id,
        date_from=date_from,
        date_to=date_to,
    )
    return summary.to_dict()
