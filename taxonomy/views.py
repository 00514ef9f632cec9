"""Taxonomy read endpoints and admin write endpoints.

Read endpoints list active entries by default (``?include_inactive=true``
for all). Admin endpoints delegate to the services, which re-check RBAC.
"""

from common.api import role_of
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from users.permissions import HasPermission, Permission

from . import selectors, services
from .serializers import SERIALIZERS

INCLUDE_INACTIVE = OpenApiParameter(
    "include_inactive", OpenApiTypes.BOOL, location="query", description="Include deactivated entries"
)

LISTINGS = {
    "main-categories": selectors.list_main_categories,
    "materials": selectors.list_materials,
    "colors": selectors.list_colors,
}


def _truthy(value) -> bool:
    return str(value).lower() in ("1", "true", "yes")


class TaxonomyKindMixin:
    kind: str = ""

    def get_queryset(self):
        include_inactive = self.action != "list" or _truthy(self.request.query_params.get("include_inactive"))
        if self.kind == "sub-categories":
            return selectors.list_sub_categories(
                main_category_id=self.request.query_params.get("main_category"), include_inactive=include_inactive
            )
        return LISTINGS[self.kind](include_inactive=include_inactive)

    def get_serializer_class(self):
        return SERIALIZERS[self.kind]


@extend_schema_view(
    list=extend_schema(tags=["Taxonomy Endpoints"], summary="List taxonomy entries", parameters=[INCLUDE_INACTIVE]),
    retrieve=extend_schema(tags=["Taxonomy Endpoints"], summary="Get taxonomy entry"),
)
class TaxonomyReadViewSet(TaxonomyKindMixin, viewsets.ReadOnlyModelViewSet):
    throttle_scope = "catalog"
    pagination_class = None


@extend_schema_view(
    create=extend_schema(tags=["Admin Endpoints"], summary="Add taxonomy entry (reactivates inactive match)"),
    partial_update=extend_schema(tags=["Admin Endpoints"], summary="Update taxonomy entry"),
)
class TaxonomyAdminViewSet(TaxonomyKindMixin, mixins.CreateModelMixin, mixins.UpdateModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.CREATE_PRODUCTS)]
    throttle_scope = "catalog_admin_write"
    http_method_names = ["post", "patch"]

    def create(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        entry = services.add_entry(kind=self.kind, role=role_of(request.user), actor=request.user, **ser.validated_data)
        return Response(self.get_serializer(entry).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        ser = self.get_serializer(self.get_object(), data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        entry = services.update_entry(
            kind=self.kind,
            role=role_of(request.user),
            entry_id=int(kwargs["pk"]),
            actor=request.user,
            **ser.validated_data,
        )
        return Response(self.get_serializer(entry).data)

    @extend_schema(tags=["Admin Endpoints"], summary="Deactivate taxonomy entry", request=None)
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        entry = services.deactivate_entry(
            kind=self.kind, role=role_of(request.user), entry_id=int(pk), actor=request.user
        )
        return Response(self.get_serializer(entry).data)

    @extend_schema(tags=["Admin Endpoints"], summary="Reactivate taxonomy entry", request=None)
    @action(detail=True, methods=["post"])
    def reactivate(self, request, pk=None):
        entry = services.reactivate_entry(
            kind=self.kind, role=role_of(request.user), entry_id=int(pk), actor=request.user
        )
        return Response(self.get_serializer(entry).data)


def viewsets_for(base):
    """One concrete viewset class per taxonomy kind."""

    return {
        kind: type(f"{kind.title().replace('-', '')}{base.__name__}", (base,), {"kind": kind})
        for kind in services.KINDS
    }
