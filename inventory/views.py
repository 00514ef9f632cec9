"""Inventory stock reads and the manual adjustment endpoint."""

from common.api import role_of
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from users.permissions import HasPermission, Permission

from . import selectors
from .models import StockItem, StockReservation
from .serializers import (
    InventoryBatchSerializer,
    StockAdjustSerializer,
    StockItemSerializer,
    StockReservationSerializer,
)
from .services import adjust_stock


class StockItemFilterSet(filters.FilterSet):
    product_id = filters.NumberFilter(field_name="variant__product_id")
    variant_id = filters.NumberFilter(field_name="variant_id")
    updated_after = filters.IsoDateTimeFilter(field_name="updated_at", lookup_expr="gte")

    class Meta:
        model = StockItem
        fields = ["product_id", "variant_id", "warehouse", "updated_after"]


class StockItemListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.VIEW_INVENTORY_LEVELS)]
    serializer_class = StockItemSerializer
    filterset_class = StockItemFilterSet
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock rows",
        description="Stock per variant and warehouse. Filters: product_id, variant_id, warehouse, updated_after (ISO).",
        examples=[
            OpenApiExample(
                "Stock rows",
                value={
                    "results": [
                        {
                            "id": 1,
                            "product": 3,
                            "variant": 10,
                            "variant_code": "large-walnut",
                            "warehouse": "lorenzo",
                            "quantity": 5,
                            "reserved": 2,
                            "available": 3,
                            "updated_at": "2025-01-01T12:00:00Z",
                        }
                    ]
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return selectors.list_stock()


class BatchListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.MANAGE_INVENTORY)]
    serializer_class = InventoryBatchSerializer
    filterset_fields = ["stock_item"]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List inventory batches",
        description="Append-only adjustment log in FIFO order. Filter: stock_item.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return selectors.list_batches()


class ReservationListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.MANAGE_INVENTORY)]
    serializer_class = StockReservationSerializer
    filterset_fields = ["variant", "warehouse", "state", "reference"]
    throttle_scope = "inventory"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock reservations",
        description="Checkout-time holds. Filters: variant, warehouse, state (active/released/committed), reference.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return StockReservation.objects.order_by("-created_at", "id")


class StockAdjustView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "inventory_write"

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Adjust stock",
        description=(
            "Overwrite quantity (and optionally reserved) for one variant at one warehouse. "
            "The delta is recorded as an inventory batch."
        ),
        request=StockAdjustSerializer,
        responses={200: StockItemSerializer},
        examples=[
            OpenApiExample(
                "Receive stock",
                value={"variant_id": 10, "warehouse": "lorenzo", "quantity": 25, "notes": "Delivery #88"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        ser = StockAdjustSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        item = adjust_stock(
            variant_id=data["variant_id"],
            warehouse=data["warehouse"],
            new_quantity=data["quantity"],
            new_reserved=data.get("reserved"),
            notes=data.get("notes", ""),
            role=role_of(request.user),
            actor=request.user,
        )
        return Response(StockItemSerializer(item).data, status=status.HTTP_200_OK)


# EOF
