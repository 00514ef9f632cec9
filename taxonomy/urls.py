"""URL routes for taxonomy reads (``/api/v1/taxonomy/``)."""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import TaxonomyReadViewSet, viewsets_for

router = SimpleRouter()
for kind, viewset in viewsets_for(TaxonomyReadViewSet).items():
    router.register(kind, viewset, basename=f"taxonomy-{kind}")

urlpatterns = [path("", include(router.urls))]
