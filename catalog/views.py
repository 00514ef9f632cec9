"""Read-only viewsets for catalog resources."""

from django_filters import rest_framework as filters
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters as drf_filters
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from . import selectors
from .models import Product
from .serializers import ProductDetailSerializer, ProductListSerializer, ProductVariantSerializer


class ProductFilterSet(filters.FilterSet):
    color = filters.NumberFilter(field_name="variants__color_id")

    class Meta:
        model = Product
        fields = ["category", "sub_category", "material", "is_featured", "color"]


@extend_schema_view(
    list=extend_schema(
        summary="List products",
        description=(
            "Returns active products. Filter by `category`, `sub_category`, `material`, `color`, `is_featured`; "
            "order by `name`, `created_at` or `base_price`; search via `search`."
        ),
        tags=["Catalog Endpoints"],
        parameters=[
            OpenApiParameter("category", OpenApiTypes.STR, location="query", description="chairs or tables"),
            OpenApiParameter("color", OpenApiTypes.INT, location="query", description="Filter by color id"),
            OpenApiParameter("search", OpenApiTypes.STR, location="query", description="Search products by text"),
        ],
        examples=[
            OpenApiExample(
                "Product list",
                value={
                    "count": 1,
                    "next": None,
                    "previous": None,
                    "results": [
                        {
                            "id": 1,
                            "name": "Narra Dining Chair",
                            "slug": "narra-dining-chair",
                            "category": "chairs",
                            "display_price": "4500.00",
                            "max_price": "5200.00",
                            "has_multiple_prices": True,
                            "is_featured": False,
                            "primary_media_url": None,
                        }
                    ],
                },
                response_only=True,
            )
        ],
    ),
    retrieve=extend_schema(
        summary="Get product by slug",
        description="Returns an active product with variants (availability annotated) and media",
        tags=["Catalog Endpoints"],
    ),
)
class ProductViewSet(viewsets.ReadOnlyModelViewSet):
    lookup_field = "slug"
    lookup_value_regex = "[^/]+"
    filterset_class = ProductFilterSet
    filter_backends = [filters.DjangoFilterBackend, drf_filters.OrderingFilter, drf_filters.SearchFilter]
    ordering_fields = ["name", "created_at", "base_price"]
    search_fields = ["name", "description"]
    throttle_scope = "catalog"

    def get_queryset(self):
        return selectors.list_products()

    def get_serializer_class(self):
        return ProductDetailSerializer if self.action == "retrieve" else ProductListSerializer

    @extend_schema(
        tags=["Catalog Endpoints"],
        summary="List product variants",
        description="Returns active variants of an active product with total availability",
    )
    @action(detail=True, methods=["get"], url_path="variants")
    def variants(self, request, slug=None):
        product = self.get_object()
        qs = selectors.list_variants_for_product(product_id=product.id)
        return Response(ProductVariantSerializer(qs, many=True).data)
