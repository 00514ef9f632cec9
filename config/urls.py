"""
URL configuration for the furniture store backend.

Everything public lives under the versioned ``/api/v1/`` prefix; admin write
endpoints sit under ``/api/v1/admin/`` and re-check roles in the services.
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from .health import health

admin.site.site_header = "Furnish Admin"
admin.site.index_title = "Store operations"

urlpatterns = [
    path("admin/", admin.site.urls),
    # API schema and Swagger UI
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
    # Healthcheck
    path("health/", health, name="health"),
    # Versioned v1 routes only
    path("api/v1/", include("users.urls")),
    path("api/v1/taxonomy/", include("taxonomy.urls")),
    path("api/v1/catalog/", include("catalog.urls")),
    path("api/v1/admin/taxonomy/", include("taxonomy.admin_urls")),
    path("api/v1/admin/catalog/", include("catalog.admin_urls")),
    path("api/v1/inventory/", include("inventory.urls")),
    path("api/v1/cart/", include("cart.urls")),
    path("api/v1/orders/", include("orders.urls")),
    path("api/v1/admin/coupons/", include("orders.coupon_urls")),
    path("api/v1/admin/audit/", include("audit.urls")),
]
