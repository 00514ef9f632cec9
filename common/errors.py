"""Error taxonomy shared by every domain service.

Services raise these inside ``transaction.atomic`` blocks, so a raised error
always leaves the database as it was before the call. Each error carries a
stable ``code`` and a ``payload()`` with the structured data a caller needs
to render a correct message (available stock, current state, ...).
"""

from typing import Iterable, Optional


class CoreError(Exception):
    """Base class for classified domain failures."""

    code = "error"
    default_message = "Unable to complete the request."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def payload(self) -> dict:
        return {}


class InvalidInput(CoreError):
    code = "invalid_input"
    default_message = "Invalid input."


class NotFound(CoreError):
    code = "not_found"
    default_message = "Not found."


class PermissionDenied(CoreError):
    # Generic message; never names the missing permission
    code = "permission_denied"
    default_message = "You do not have permission to perform this action."

    def __init__(self):
        super().__init__(self.default_message)


class InsufficientStock(CoreError):
    code = "insufficient_stock"
    default_message = "Insufficient stock."

    def __init__(
        self,
        *,
        available: int,
        requested: Optional[int] = None,
        product_id: Optional[int] = None,
        variant_id: Optional[int] = None,
        warehouse: Optional[str] = None,
    ):
        super().__init__(f"Insufficient stock. Requested: {requested}, Available: {available}")
        self.available = int(available)
        self.requested = requested
        self.product_id = product_id
        self.variant_id = variant_id
        self.warehouse = warehouse

    def payload(self) -> dict:
        data = {"available": self.available}
        if self.requested is not None:
            data["requested"] = self.requested
        if self.product_id is not None:
            data["product_id"] = self.product_id
        if self.variant_id is not None:
            data["variant_id"] = self.variant_id
        if self.warehouse:
            data["warehouse"] = self.warehouse
        return data


class ConcurrentStockChange(CoreError):
    code = "concurrent_stock_change"
    default_message = "Stock changed while the order was being placed. Please try again."


class InvalidAdjustment(CoreError):
    code = "invalid_adjustment"
    default_message = "Reserved quantity cannot exceed on-hand quantity."


class InvalidStateTransition(CoreError):
    code = "invalid_state_transition"

    def __init__(self, *, current_state: str, attempted: str, allowed: Iterable[str] = ()):
        self.current_state = current_state
        self.attempted = attempted
        self.allowed = sorted(allowed)
        super().__init__(f"Cannot move order from {current_state} to {attempted}.")

    def payload(self) -> dict:
        return {"current_state": self.current_state, "attempted": self.attempted, "allowed": self.allowed}


class AlreadyRefunded(CoreError):
    code = "already_refunded"
    default_message = "This order has already been refunded."


class InvalidAmount(CoreError):
    code = "invalid_amount"

    def __init__(self, *, amount, maximum):
        self.amount = amount
        self.maximum = maximum
        super().__init__(f"Refund amount {amount} exceeds the refundable maximum {maximum}.")

    def payload(self) -> dict:
        return {"amount": str(self.amount), "maximum": str(self.maximum)}


class DuplicateName(CoreError):
    code = "duplicate_name"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f'"{name}" already exists.')

    def payload(self) -> dict:
        return {"name": self.name}


class UnknownTaxonomyReference(CoreError):
    code = "unknown_taxonomy_reference"

    def __init__(self, *, kind: str, value):
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown or inactive {kind}: {value}")

    def payload(self) -> dict:
        return {"kind": self.kind, "value": str(self.value)}


class NoActiveVariant(CoreError):
    code = "no_active_variant"
    default_message = "An active product needs at least one active variant."


class InactiveProduct(CoreError):
    code = "inactive_product"
    default_message = "This product is no longer available."


class InactiveVariant(CoreError):
    code = "inactive_variant"
    default_message = "This product option is no longer available."


class VariantNotFound(CoreError):
    code = "variant_not_found"
    default_message = "Variant not found for this product."


class CartFull(CoreError):
    code = "cart_full"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"A cart can hold at most {limit} different items.")

    def payload(self) -> dict:
        return {"limit": self.limit}


class InvalidCoupon(CoreError):
    code = "invalid_coupon"
    default_message = "Invalid coupon code."


class AllocationFailed(CoreError):
    """Raised when checkout allocation fails; carries every per-line error."""

    code = "allocation_failed"
    default_message = "Some items could not be allocated."

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(self.default_message)

    def payload(self) -> dict:
        return {"errors": [e.as_dict() for e in self.errors]}
