"""Shared enumerations and choices used across apps."""

from django.db import models


class Role(models.TextChoices):
    """Closed set of user roles consumed by the RBAC gate."""

    CUSTOMER = "customer", "Customer"
    STAFF = "staff", "Sales Staff"
    INVENTORY_CLERK = "inventory-clerk", "Inventory Clerk"
    ADMIN = "admin", "Administrator"
    OWNER = "owner", "Owner"


class Warehouse(models.TextChoices):
    """Physical stock locations."""

    LORENZO = "lorenzo", "Lorenzo"
    OROQUIETA = "oroquieta", "Oroquieta"


class ProductCategory(models.TextChoices):
    CHAIRS = "chairs", "Chairs"
    TABLES = "tables", "Tables"


class ReservationState(models.TextChoices):
    ACTIVE = "active", "Active"
    RELEASED = "released", "Released"
    COMMITTED = "committed", "Committed"


class CartStatus(models.TextChoices):
    """Statuses for shopping carts."""

    ACTIVE = "active", "Active"
    ORDERED = "ordered", "Ordered"
    ABANDONED = "abandoned", "Abandoned"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    RESERVED = "reserved", "Reserved"
    PROCESSING = "processing", "Processing"
    READY_FOR_PICKUP = "ready-for-pickup", "Ready for Pickup"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    REFUND_REQUESTED = "refund-requested", "Refund Requested"
    REFUNDED = "refunded", "Refunded"


class CanceledBy(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    ADMIN = "admin", "Admin"


class FulfillmentMethod(models.TextChoices):
    PICKUP = "pickup", "Pickup"
    DELIVERY = "delivery", "Delivery"


class PaymentMethod(models.TextChoices):
    CASH = "cash", "Cash"
    GCASH = "gcash", "GCash"
    BANK = "bank", "Bank Transfer"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


class ItemRefundStatus(models.TextChoices):
    """Per-line refund sub-state on an order item."""

    NONE = "none", "None"
    PENDING = "pending", "Pending"
    REFUNDED = "refunded", "Refunded"
    REJECTED = "rejected", "Rejected"


class DiscountType(models.TextChoices):
    PERCENTAGE = "percentage", "Percentage"
    FIXED = "fixed", "Fixed"


class OrderEventType(models.TextChoices):
    CREATED = "created", "Created"
    STATUS_CHANGED = "status_changed", "Status changed"
    CANCELLED = "cancelled", "Cancelled"
    REOPENED = "reopened", "Reopened"
    PAYMENT_VERIFIED = "payment_verified", "Payment verified"
    REFUND_REQUESTED = "refund_requested", "Refund requested"
    REFUNDED = "refunded", "Refunded"


class AuditAction(models.TextChoices):
    ACCOUNT_CREATED = "account_created", "Account created"
    ROLE_CHANGED = "role_changed", "Role changed"
    PRODUCT_CREATED = "product_created", "Product created"
    PRODUCT_MODIFIED = "product_modified", "Product modified"
    PRODUCT_DELETED = "product_deleted", "Product deleted"
    PRODUCT_REACTIVATED = "product_reactivated", "Product reactivated"
    TAXONOMY_CREATED = "taxonomy_created", "Taxonomy created"
    TAXONOMY_MODIFIED = "taxonomy_modified", "Taxonomy modified"
    TAXONOMY_DELETED = "taxonomy_deleted", "Taxonomy deleted"
    TAXONOMY_REACTIVATED = "taxonomy_reactivated", "Taxonomy reactivated"
    COUPON_CREATED = "coupon_created", "Coupon created"
    COUPON_MODIFIED = "coupon_modified", "Coupon modified"
    COUPON_ACTIVATED = "coupon_activated", "Coupon activated"
    COUPON_DEACTIVATED = "coupon_deactivated", "Coupon deactivated"


class AuditTarget(models.TextChoices):
    USER = "user", "User account"
    PRODUCT = "product", "Product"
    TAXONOMY = "taxonomy", "Taxonomy"
    COUPON = "coupon", "Coupon"
