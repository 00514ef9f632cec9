"""Admin coupon endpoints: list, create, patch and (de)activate."""

from common.api import role_of
from drf_spectacular.utils import OpenApiExample, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from users.permissions import HasPermission, Permission

from . import selectors
from .coupons import create_coupon, set_coupon_active, update_coupon
from .serializers import CouponSerializer, CouponWriteSerializer


class CouponListCreateView(generics.ListAPIView):
    permission_classes = [
        IsAuthenticated,
        HasPermission.for_(Permission.ACCESS_ADMIN_PANEL),
        HasPermission.for_(Permission.VIEW_COUPONS),
    ]
    serializer_class = CouponSerializer
    throttle_scope = "orders"

    def get_queryset(self):
        return selectors.list_coupons(role=role_of(self.request.user))

    @extend_schema(tags=["Admin Endpoints"], summary="List coupons")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="Create coupon",
        request=CouponWriteSerializer,
        responses={201: CouponSerializer},
        examples=[
            OpenApiExample(
                "Percentage",
                value={"code": "SALA10", "discount_type": "percentage", "discount_value": "10", "max_discount": "2000"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = CouponWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        coupon = create_coupon(role=role_of(request.user), actor=request.user, **serializer.validated_data)
        return Response(CouponSerializer(coupon).data, status=status.HTTP_201_CREATED)


class CouponDetailView(APIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.UPDATE_COUPONS)]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="Update coupon",
        request=CouponWriteSerializer,
        responses={200: CouponSerializer},
    )
    def patch(self, request, coupon_id: int):
        serializer = CouponWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        coupon = update_coupon(
            role=role_of(request.user),
            coupon_id=coupon_id,
            changes=dict(serializer.validated_data),
            actor=request.user,
        )
        return Response(CouponSerializer(coupon).data)


class CouponActivationView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"
    active = True

    @extend_schema(
        tags=["Admin Endpoints"],
        summary="Activate or deactivate coupon",
        request=None,
        responses={200: CouponSerializer},
    )
    def post(self, request, coupon_id: int):
        coupon = set_coupon_active(
            role=role_of(request.user),
            coupon_id=coupon_id,
            active=self.active,
            actor=request.user,
        )
        return Response(CouponSerializer(coupon).data)
