"""Django app configuration for the orders app."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """AppConfig for the order lifecycle, refunds and coupons."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
