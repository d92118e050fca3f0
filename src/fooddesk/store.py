"""Order and catalog storage for fooddesk."""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterator, Protocol

from . import config
from .errors import (
    InvalidSchemaVersionError,
    OrderNotFoundError,
    ProductNotFoundError,
    StoreError,
    ValidationError,
    ZoneNotFoundError,
)
from .models import (
    ORDER_STATUSES,
    DeliveryZone,
    Order,
    OrderPayload,
    Product,
    ShopState,
    StaffUser,
    StoreData,
)
from .utils import utc_now

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
STORE_FILE = "fooddesk.json"
LOCK_FILE = ".fooddesk.lock"


class Store(Protocol):
    """Contract of the order/catalog store consumed by the engine.

    Every call is idempotent by ID except create_order. Implementations raise
    StoreError when the backing storage can't be reached; callers surface it
    and leave their local state untouched.
    """

    def list_products(self) -> list[Product]: ...

    def list_zones(self) -> list[DeliveryZone]: ...

    def list_orders(self) -> list[Order]: ...

    def get_order(self, order_id: str) -> Order: ...

    def create_order(self, payload: OrderPayload, created_at: str | None = None) -> Order: ...

    def update_order_status(self, order_id: str, status: str) -> Order: ...

    def delete_order(self, order_id: str) -> None: ...

    def list_staff_users(self) -> list[StaffUser]: ...

    def add_staff_user(self, user: StaffUser) -> StaffUser: ...

    def get_shop_state(self) -> ShopState: ...

    def save_shop_state(self, state: ShopState) -> ShopState: ...

    def update_shop_state(self, updates: dict[str, Any]) -> ShopState: ...


def _check_non_negative(field: str, value: Decimal) -> None:
    if value < 0:
        raise ValidationError(field, f"{field} must be zero or more")


def _apply_updates(current: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(current)
    merged.update({k: v for k, v in updates.items() if k not in ("id", "_id", "createdAt")})
    merged["updatedAt"] = utc_now()
    return merged


class FileStore:
    """Keeps products, zones, orders, staff users and shop state in one JSON file."""

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize FileStore.

        Args:
            data_dir: Override data directory (for testing).
        """
        self.data_dir = Path(data_dir) if data_dir is not None else config.data_dir()
        self.path = self.data_dir / STORE_FILE

    def _ensure_dir(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError("prepare data directory", str(e))

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the store for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.data_dir / LOCK_FILE
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> StoreData:
        """
        Load the store from disk (an empty store if no file exists yet).

        Raises:
            StoreError: If the file can't be read or parsed.
            InvalidSchemaVersionError: If schema version is unsupported.
        """
        if not self.exists():
            return StoreData(schema_version=SCHEMA_VERSION)

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError("load", str(e))

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)

        try:
            return StoreData.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError("load", f"malformed record: {e}")

    def save(self, data: StoreData) -> None:
        """
        Save the store to disk atomically.

        Uses write-to-temp-then-rename for atomicity.
        """
        self._ensure_dir()
        try:
            fd, temp_path = tempfile.mkstemp(
                dir=self.data_dir, prefix=".fooddesk_", suffix=".tmp"
            )
        except OSError as e:
            raise StoreError("save", str(e))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data.to_dict(), f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(temp_path, self.path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StoreError("save", str(e))

    @contextmanager
    def _mutate(self) -> Iterator[StoreData]:
        """Load, let the caller modify, then save - all under the lock."""
        with self._lock():
            data = self.load()
            yield data
            self.save(data)

    # --- Products ---

    def list_products(self) -> list[Product]:
        return self.load().products

    def get_product(self, product_id: str) -> Product:
        """
        Raises:
            ProductNotFoundError: If product doesn't exist.
        """
        for p in self.list_products():
            if p.id == product_id:
                return p
        raise ProductNotFoundError(product_id)

    def create_product(self, product: Product) -> Product:
        _check_non_negative("price", product.price)
        _check_non_negative("costToMake", product.cost_to_make)
        with self._mutate() as data:
            data.products.append(product)
        logger.info("Created product %s (%s)", product.id, product.name)
        return product

    def update_product(self, product_id: str, updates: dict[str, Any]) -> Product:
        """
        Apply wire-format field updates to a product.

        Raises:
            ProductNotFoundError: If product doesn't exist.
            ValidationError: If a money field is invalid.
        """
        with self._mutate() as data:
            for i, existing in enumerate(data.products):
                if existing.id == product_id:
                    try:
                        updated = Product.from_dict(_apply_updates(existing.to_dict(), updates))
                    except ValueError as e:
                        raise ValidationError("product", str(e))
                    _check_non_negative("price", updated.price)
                    _check_non_negative("costToMake", updated.cost_to_make)
                    data.products[i] = updated
                    return updated
            raise ProductNotFoundError(product_id)

    def delete_product(self, product_id: str) -> Product:
        with self._mutate() as data:
            for i, p in enumerate(data.products):
                if p.id == product_id:
                    return data.products.pop(i)
            raise ProductNotFoundError(product_id)

    # --- Delivery zones ---

    def list_zones(self) -> list[DeliveryZone]:
        """Zones in configured order (the order matters for fee matching)."""
        return self.load().zones

    def get_zone(self, zone_id: str) -> DeliveryZone:
        for z in self.list_zones():
            if z.id == zone_id:
                return z
        raise ZoneNotFoundError(zone_id)

    def create_zone(self, zone: DeliveryZone) -> DeliveryZone:
        _check_non_negative("fee", zone.fee)
        with self._mutate() as data:
            data.zones.append(zone)
        logger.info("Created delivery zone %s (%s)", zone.id, zone.zone_name)
        return zone

    def update_zone(self, zone_id: str, updates: dict[str, Any]) -> DeliveryZone:
        with self._mutate() as data:
            for i, existing in enumerate(data.zones):
                if existing.id == zone_id:
                    try:
                        updated = DeliveryZone.from_dict(
                            _apply_updates(existing.to_dict(), updates)
                        )
                    except ValueError as e:
                        raise ValidationError("zone", str(e))
                    _check_non_negative("fee", updated.fee)
                    data.zones[i] = updated
                    return updated
            raise ZoneNotFoundError(zone_id)

    def delete_zone(self, zone_id: str) -> DeliveryZone:
        with self._mutate() as data:
            for i, z in enumerate(data.zones):
                if z.id == zone_id:
                    return data.zones.pop(i)
            raise ZoneNotFoundError(zone_id)

    # --- Orders ---

    def list_orders(self) -> list[Order]:
        return self.load().orders

    def get_order(self, order_id: str) -> Order:
        """
        Raises:
            OrderNotFoundError: If order doesn't exist.
        """
        for o in self.list_orders():
            if o.id == order_id:
                return o
        raise OrderNotFoundError(order_id)

    def create_order(self, payload: OrderPayload, created_at: str | None = None) -> Order:
        order = Order.create(payload, created_at=created_at)
        with self._mutate() as data:
            data.orders.append(order)
        logger.info("Created order %s total=%s", order.id, order.total_amount)
        return order

    def update_order_status(self, order_id: str, status: str) -> Order:
        if status not in ORDER_STATUSES:
            raise ValidationError("status", f"Unknown order status: {status}")
        with self._mutate() as data:
            for order in data.orders:
                if order.id == order_id:
                    order.status = status
                    order.updated_at = utc_now()
                    return order
            raise OrderNotFoundError(order_id)

    def delete_order(self, order_id: str) -> None:
        """Permanently delete an order and its payment record."""
        with self._mutate() as data:
            for i, o in enumerate(data.orders):
                if o.id == order_id:
                    data.orders.pop(i)
                    logger.info("Deleted order %s", order_id)
                    return
            raise OrderNotFoundError(order_id)

    # --- Staff users ---

    def list_staff_users(self) -> list[StaffUser]:
        return self.load().staff_users

    def add_staff_user(self, user: StaffUser) -> StaffUser:
        with self._mutate() as data:
            for existing in data.staff_users:
                if existing.email.lower() == user.email.lower():
                    raise ValidationError("email", f"Staff user already exists: {user.email}")
            data.staff_users.append(user)
        return user

    # --- Shop state ---

    def get_shop_state(self) -> ShopState:
        return self.load().shop

    def save_shop_state(self, state: ShopState) -> ShopState:
        with self._mutate() as data:
            state.updated_at = utc_now()
            data.shop = state
        return state

    def update_shop_state(self, updates: dict[str, Any]) -> ShopState:
        """Apply wire-format field updates to the current shop state."""
        with self._mutate() as data:
            data.shop = ShopState.from_dict(_apply_updates(data.shop.to_dict(), updates))
            return data.shop
