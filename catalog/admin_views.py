"""Admin viewsets for write endpoints in the catalog app.

Views shape input and delegate to ``catalog.services``, which re-check the
caller's role against the RBAC gate before touching state.
"""

from common.api import role_of
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from users.permissions import HasPermission, Permission

from . import selectors, services
from .admin_serializers import ProductWriteSerializer, VariantInputSerializer
from .serializers import ProductDetailSerializer, ProductVariantSerializer


@extend_schema_view(
    list=extend_schema(tags=["Admin Endpoints"], summary="List products (admin, includes inactive)"),
    retrieve=extend_schema(tags=["Admin Endpoints"], summary="Get product (admin)"),
)
class ProductAdminViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.VIEW_PRODUCTS)]
    serializer_class = ProductDetailSerializer
    throttle_scope = "catalog_admin_write"

    def get_queryset(self):
        return selectors.list_products(include_inactive=True)

    def _detail(self, product, code=status.HTTP_200_OK):
        fresh = selectors.list_products(include_inactive=True).get(id=product.id)
        return Response(ProductDetailSerializer(fresh).data, status=code)

    @extend_schema(tags=["Admin Endpoints"], summary="Create product", request=ProductWriteSerializer)
    def create(self, request):
        ser = ProductWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        product = services.create_product(role=role_of(request.user), actor=request.user, **ser.validated_data)
        return self._detail(product, status.HTTP_201_CREATED)

    @extend_schema(tags=["Admin Endpoints"], summary="Update product", request=ProductWriteSerializer)
    def partial_update(self, request, pk=None):
        ser = ProductWriteSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        changes = {k: v for k, v in ser.validated_data.items() if k not in ("variants", "media")}
        product = services.update_product(
            role=role_of(request.user), product_id=int(pk), actor=request.user, **changes
        )
        return self._detail(product)

    @extend_schema(tags=["Admin Endpoints"], summary="Deactivate product (soft delete)", request=None)
    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):
        product = services.deactivate_product(role=role_of(request.user), product_id=int(pk), actor=request.user)
        return self._detail(product)

    @extend_schema(tags=["Admin Endpoints"], summary="Reactivate product", request=None)
    @action(detail=True, methods=["post"])
    def reactivate(self, request, pk=None):
        product = services.reactivate_product(role=role_of(request.user), product_id=int(pk), actor=request.user)
        return self._detail(product)

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="Add or update a variant",
        description="Upserts by (size, color); a deactivated combination is reactivated with the same code.",
        request=VariantInputSerializer,
        responses={200: ProductVariantSerializer},
    )
    @action(detail=True, methods=["post"], url_path="variants")
    def save_variant(self, request, pk=None):
        ser = VariantInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        variant = services.save_variant(
            role=role_of(request.user), product_id=int(pk), actor=request.user, **ser.validated_data
        )
        return Response(ProductVariantSerializer(variant).data)

    @extend_schema(tags=["Admin Endpoints"], summary="Deactivate a variant", request=None)
    @action(detail=True, methods=["post"], url_path=r"variants/(?P<code>[^/]+)/deactivate")
    def deactivate_variant(self, request, pk=None, code=None):
        variant = services.deactivate_variant(
            role=role_of(request.user), product_id=int(pk), variant_code=code, actor=request.user
        )
        return Response(ProductVariantSerializer(variant).data)
