"""Django app configuration for inventory."""

from django.apps import AppConfig


class InventoryConfig(AppConfig):
    """Stock ledger, batches, reservations and the allocation planner."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "inventory"
