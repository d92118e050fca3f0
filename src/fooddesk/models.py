"""Data models for fooddesk."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from . import config
from .utils import ZERO, generate_id, money_to_json, to_decimal, utc_now

# Order lifecycle statuses
CONFIRMED = "CONFIRMED"
COOKING = "COOKING"
READY = "READY"
COMPLETED = "COMPLETED"
# Never stored: a cancelled order is deleted. Kept so filters can recognise it.
CANCELLED = "CANCELLED"

ORDER_STATUSES = (CONFIRMED, COOKING, READY, COMPLETED)
CLOSED_STATUSES = (COMPLETED, CANCELLED)

PAYMENT_PAID = "PAID"


@dataclass
class Product:
    """A dish on the menu."""

    id: str
    name: str
    price: Decimal
    cost_to_make: Decimal = ZERO
    category: str = ""
    is_active: bool = True
    is_sold_out: bool = False
    image_url: str = ""
    ingredients: list[str] = field(default_factory=list)
    description: str = ""
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    @property
    def is_available(self) -> bool:
        """A product can be bought only while active and not sold out."""
        return self.is_active and not self.is_sold_out

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": money_to_json(self.price),
            "costToMake": money_to_json(self.cost_to_make),
            "category": self.category,
            "isActive": self.is_active,
            "isSoldOut": self.is_sold_out,
            "imageUrl": self.image_url,
            "ingredients": list(self.ingredients),
            "description": self.description,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Product":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            name=data.get("name", ""),
            price=to_decimal(data.get("price")),
            cost_to_make=to_decimal(data.get("costToMake")),
            category=data.get("category") or "",
            is_active=bool(data.get("isActive", True)),
            is_sold_out=bool(data.get("isSoldOut", False)),
            image_url=data.get("imageUrl") or "",
            ingredients=[str(i) for i in data.get("ingredients") or []],
            description=data.get("description") or "",
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    @classmethod
    def create(
        cls,
        name: str,
        price: Decimal,
        cost_to_make: Decimal = ZERO,
        category: str = "",
        is_active: bool = True,
        is_sold_out: bool = False,
        image_url: str = "",
        ingredients: list[str] | None = None,
        description: str = "",
    ) -> "Product":
        """Create a new product with generated ID and timestamps."""
        now = utc_now()
        return cls(
            id=generate_id(),
            name=name,
            price=price,
            cost_to_make=cost_to_make,
            category=category,
            is_active=is_active,
            is_sold_out=is_sold_out,
            image_url=image_url,
            ingredients=list(ingredients or []),
            description=description,
            created_at=now,
            updated_at=now,
        )


@dataclass
class DeliveryZone:
    """A delivery area with a flat fee, matched by address keywords."""

    id: str
    zone_name: str
    fee: Decimal
    is_active: bool = True
    area_keywords: list[str] = field(default_factory=list)  # may be empty
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "zoneName": self.zone_name,
            "fee": money_to_json(self.fee),
            "isActive": self.is_active,
            "areaKeywords": list(self.area_keywords),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryZone":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            zone_name=data.get("zoneName", ""),
            fee=to_decimal(data.get("fee")),
            is_active=bool(data.get("isActive", True)),
            area_keywords=[str(k) for k in data.get("areaKeywords") or []],
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    @classmethod
    def create(
        cls,
        zone_name: str,
        fee: Decimal,
        area_keywords: list[str] | None = None,
        is_active: bool = True,
    ) -> "DeliveryZone":
        """Create a new zone with generated ID and timestamps."""
        now = utc_now()
        return cls(
            id=generate_id(),
            zone_name=zone_name,
            fee=fee,
            is_active=is_active,
            area_keywords=list(area_keywords or []),
            created_at=now,
            updated_at=now,
        )


@dataclass
class CartEntry:
    """A product reference and quantity held in a customer's cart."""

    product_id: str
    qty: int

    def to_dict(self) -> dict[str, Any]:
        return {"productId": self.product_id, "qty": self.qty}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CartEntry":
        return cls(product_id=str(data["productId"]), qty=int(data.get("qty", 1)))


@dataclass(frozen=True)
class CartLine:
    """A visible cart line, derived from an entry and the live catalog."""

    product_id: str
    name: str
    price: Decimal  # snapshot of the catalog price
    qty: int
    image_url: str = ""
    unit_cost: Decimal = ZERO

    @property
    def line_total(self) -> Decimal:
        return self.price * self.qty

    @property
    def is_bulk(self) -> bool:
        return self.qty > config.BULK_LINE_THRESHOLD

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "name": self.name,
            "price": money_to_json(self.price),
            "qty": self.qty,
            "imageUrl": self.image_url,
            "lineTotal": money_to_json(self.line_total),
        }


@dataclass
class OrderItem:
    """An ordered dish with price and cost snapshots taken at checkout."""

    product_id: str
    product_name: str
    qty: int
    unit_price: Decimal
    unit_cost_at_sale: Decimal = ZERO

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "qty": self.qty,
            "unitPrice": money_to_json(self.unit_price),
            "unitCostAtSale": money_to_json(self.unit_cost_at_sale),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderItem":
        return cls(
            product_id=str(data["productId"]),
            product_name=data.get("productName", ""),
            qty=int(data["qty"]),
            unit_price=to_decimal(data.get("unitPrice")),
            unit_cost_at_sale=to_decimal(data.get("unitCostAtSale")),
        )


@dataclass
class OrderPayload:
    """The immutable request body submitted to the order store on checkout."""

    customer_name: str
    customer_phone: str
    customer_email: str
    delivery_address: str
    order_note: str
    scheduled_date_time: str | None  # ISO instant, None means ASAP
    items: list[OrderItem]
    subtotal: Decimal
    bulk_discount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    payment_status: str = PAYMENT_PAID
    status: str = CONFIRMED

    def to_dict(self) -> dict[str, Any]:
        return {
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "deliveryAddress": self.delivery_address,
            "orderNote": self.order_note,
            "scheduledDateTime": self.scheduled_date_time,
            "items": [i.to_dict() for i in self.items],
            "subtotal": money_to_json(self.subtotal),
            "bulkDiscount": money_to_json(self.bulk_discount),
            "deliveryFee": money_to_json(self.delivery_fee),
            "totalAmount": money_to_json(self.total_amount),
            "paymentStatus": self.payment_status,
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrderPayload":
        return cls(
            customer_name=data.get("customerName", ""),
            customer_phone=data.get("customerPhone", ""),
            customer_email=data.get("customerEmail", ""),
            delivery_address=data.get("deliveryAddress", ""),
            order_note=data.get("orderNote") or "",
            scheduled_date_time=data.get("scheduledDateTime"),
            items=[OrderItem.from_dict(i) for i in data.get("items", [])],
            subtotal=to_decimal(data.get("subtotal")),
            bulk_discount=to_decimal(data.get("bulkDiscount")),
            delivery_fee=to_decimal(data.get("deliveryFee")),
            total_amount=to_decimal(data.get("totalAmount")),
            payment_status=data.get("paymentStatus", PAYMENT_PAID),
            status=data.get("status", CONFIRMED),
        )


@dataclass
class Order:
    """A placed order as held by the order store."""

    id: str
    customer_name: str
    customer_phone: str
    customer_email: str
    delivery_address: str
    items: list[OrderItem]
    subtotal: Decimal
    bulk_discount: Decimal
    delivery_fee: Decimal
    total_amount: Decimal
    order_note: str = ""
    scheduled_date_time: str | None = None
    payment_status: str = PAYMENT_PAID
    status: str = CONFIRMED
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "customerEmail": self.customer_email,
            "deliveryAddress": self.delivery_address,
            "orderNote": self.order_note,
            "scheduledDateTime": self.scheduled_date_time,
            "items": [i.to_dict() for i in self.items],
            "subtotal": money_to_json(self.subtotal),
            "bulkDiscount": money_to_json(self.bulk_discount),
            "deliveryFee": money_to_json(self.delivery_fee),
            "totalAmount": money_to_json(self.total_amount),
            "paymentStatus": self.payment_status,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Order":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            customer_name=data.get("customerName", ""),
            customer_phone=data.get("customerPhone", ""),
            customer_email=data.get("customerEmail", ""),
            delivery_address=data.get("deliveryAddress", ""),
            items=[OrderItem.from_dict(i) for i in data.get("items", [])],
            subtotal=to_decimal(data.get("subtotal")),
            bulk_discount=to_decimal(data.get("bulkDiscount")),
            delivery_fee=to_decimal(data.get("deliveryFee")),
            total_amount=to_decimal(data.get("totalAmount")),
            order_note=data.get("orderNote") or "",
            scheduled_date_time=data.get("scheduledDateTime"),
            payment_status=data.get("paymentStatus", PAYMENT_PAID),
            status=data.get("status", CONFIRMED),
            created_at=data.get("createdAt", ""),
            updated_at=data.get("updatedAt", ""),
        )

    @classmethod
    def create(cls, payload: OrderPayload, created_at: str | None = None) -> "Order":
        """Create a stored order from a checkout payload."""
        now = created_at or utc_now()
        return cls(
            id=generate_id(),
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            customer_email=payload.customer_email,
            delivery_address=payload.delivery_address,
            items=[
                OrderItem(
                    product_id=i.product_id,
                    product_name=i.product_name,
                    qty=i.qty,
                    unit_price=i.unit_price,
                    unit_cost_at_sale=i.unit_cost_at_sale,
                )
                for i in payload.items
            ],
            subtotal=payload.subtotal,
            bulk_discount=payload.bulk_discount,
            delivery_fee=payload.delivery_fee,
            total_amount=payload.total_amount,
            order_note=payload.order_note,
            scheduled_date_time=payload.scheduled_date_time,
            payment_status=payload.payment_status,
            status=payload.status,
            created_at=now,
            updated_at=now,
        )


@dataclass
class StaffUser:
    """A back-office user. The password is only ever stored hashed."""

    id: str
    name: str
    email: str
    password_hash: str
    role: str = "staff"
    created_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "passwordHash": self.password_hash,
            "role": self.role,
            "createdAt": self.created_at,
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Identity fields safe to hand to a client."""
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StaffUser":
        return cls(
            id=str(data.get("id") or data.get("_id")),
            name=data.get("name", ""),
            email=data.get("email", ""),
            password_hash=data.get("passwordHash", ""),
            role=data.get("role", "staff"),
            created_at=data.get("createdAt", ""),
        )

    @classmethod
    def create(cls, name: str, email: str, password_hash: str, role: str = "staff") -> "StaffUser":
        return cls(
            id=generate_id(),
            name=name,
            email=email,
            password_hash=password_hash,
            role=role,
        )


@dataclass
class ShopState:
    """Process-wide open/closed flag with its closure message."""

    is_open: bool = True
    close_message: str = config.DEFAULT_CLOSE_MESSAGE
    updated_at: str = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isOpen": self.is_open,
            "closeMessage": self.close_message,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShopState":
        return cls(
            is_open=bool(data.get("isOpen", True)),
            close_message=data.get("closeMessage") or config.DEFAULT_CLOSE_MESSAGE,
            updated_at=data.get("updatedAt", ""),
        )


@dataclass
class StoreData:
    """Full contents of the store file."""

    schema_version: int
    products: list[Product] = field(default_factory=list)
    zones: list[DeliveryZone] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    staff_users: list[StaffUser] = field(default_factory=list)
    shop: ShopState = field(default_factory=ShopState)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "products": [p.to_dict() for p in self.products],
            "deliveryZones": [z.to_dict() for z in self.zones],
            "orders": [o.to_dict() for o in self.orders],
            "staffUsers": [u.to_dict() for u in self.staff_users],
            "shop": self.shop.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreData":
        return cls(
            schema_version=data["schema_version"],
            products=[Product.from_dict(p) for p in data.get("products", [])],
            zones=[DeliveryZone.from_dict(z) for z in data.get("deliveryZones", [])],
            orders=[Order.from_dict(o) for o in data.get("orders", [])],
            staff_users=[StaffUser.from_dict(u) for u in data.get("staffUsers", [])],
            shop=ShopState.from_dict(data.get("shop", {})),
        )
