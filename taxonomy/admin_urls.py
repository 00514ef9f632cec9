"""Admin router for taxonomy write endpoints (``/api/v1/admin/taxonomy/``)."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TaxonomyAdminViewSet, viewsets_for

router = SimpleRouter()
for kind, viewset in viewsets_for(TaxonomyAdminViewSet).items():
    router.register(kind, viewset, basename=f"admin-taxonomy-{kind}")

urlpatterns = [path("", include(router.urls))]
