"""Custom exceptions for fooddesk."""


class FooddeskError(Exception):
    """Base exception for all fooddesk errors."""

    pass


class ValidationError(FooddeskError):
    """Raised when a local action is blocked by an invalid or missing field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class CheckoutValidationError(FooddeskError):
    """Raised when an order cannot be placed because checkout is not valid."""

    def __init__(self, errors: list[ValidationError]):
        self.errors = errors
        summary = "; ".join(e.message for e in errors) or "checkout is not valid"
        super().__init__(f"Cannot place order: {summary}")


class EmptyCartError(FooddeskError):
    """Raised when checkout is attempted with no available items in the cart."""

    def __init__(self):
        super().__init__("Cart is empty.")


class HeadUpConfirmationRequiredError(FooddeskError):
    """Raised when a bulk cart proceeds to checkout without the head-up acknowledgment."""

    def __init__(self, product_names: list[str]):
        self.product_names = product_names
        names = ", ".join(product_names)
        super().__init__(
            f"Bulk items need 1-day advance notice; confirm before checkout ({names})."
        )


class ShopClosedError(FooddeskError):
    """Raised when checkout is attempted while the shop is closed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StoreError(FooddeskError):
    """Raised when the backing order/catalog store cannot be read or written."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation failed: {operation} ({reason})")


class InvalidSchemaVersionError(FooddeskError):
    """Raised when the data file has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


class ConfirmationRequiredError(FooddeskError):
    """Raised when a destructive action is invoked without explicit confirmation."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(
            f"'{action}' is permanent and cannot be undone. Confirm to proceed."
        )


class ProductNotFoundError(FooddeskError):
    """Raised when a product ID doesn't exist."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class ZoneNotFoundError(FooddeskError):
    """Raised when a delivery zone ID doesn't exist."""

    def __init__(self, zone_id: str):
        self.zone_id = zone_id
        super().__init__(f"Delivery zone not found: {zone_id}")


class OrderNotFoundError(FooddeskError):
    """Raised when an order ID doesn't exist."""

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class InvalidStatusTransitionError(FooddeskError):
    """Raised when an order status change is not a single forward step."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move order from {current} to {requested}")


class AuthenticationError(FooddeskError):
    """Raised when staff credentials don't match."""

    def __init__(self):
        super().__init__("Invalid credentials")
