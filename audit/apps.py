"""Django app configuration for audit."""

from django.apps import AppConfig


class AuditConfig(AppConfig):
    """Append-only trail of administrative catalog, taxonomy, coupon and account changes."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "audit"
