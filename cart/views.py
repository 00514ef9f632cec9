"""DRF views for cart operations.

Every cart endpoint serves the authenticated user's cart, or a guest cart
addressed by the ``X-Session-Id`` header when the caller is anonymous.
Checkout and guest-cart merge require authentication.
"""

from common.api import role_of
from common.errors import InvalidInput, NotFound
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.serializers import OrderDetailSerializer
from orders.views import IDEMPOTENCY_HEADER, _detail, idempotent_response
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import CartItem
from .selectors import get_active_cart
from .serializers import (
    AddItemSerializer,
    CartReadSerializer,
    CheckoutSerializer,
    CouponSerializer,
    MergeGuestSerializer,
    UpdateItemQuantitySerializer,
)
from .services import (
    abandon_cart,
    add_line,
    apply_coupon,
    checkout_cart,
    clear_cart,
    merge_guest_cart_to_user,
    remove_coupon,
    remove_line,
    update_quantity,
)

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier; required when not authenticated",
    type=str,
)


def cart_owner(request) -> dict:
    """Keyword arguments identifying the caller's cart."""

    if request.user and request.user.is_authenticated:
        return {"user": request.user}
    session_id = request.headers.get("X-Session-Id")
    if not session_id:
        raise InvalidInput("Missing X-Session-Id.")
    return {"session_id": session_id}


def _cart_data(owner: dict) -> dict:
    return CartReadSerializer.from_cart(cart=get_active_cart(**owner)).data


def _owned_item(owner: dict, item_id: int) -> CartItem:
    item = CartItem.objects.filter(id=item_id, cart=get_active_cart(**owner)).first()
    if item is None:
        raise NotFound("Cart item not found.")
    return item


class CartDetailView(APIView):
    """Return the caller's active cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get active cart",
        description="Returns items and totals; the coupon discount is re-evaluated on every read.",
        parameters=[SESSION_HEADER],
        responses={200: CartReadSerializer},
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "items": [
                        {
                            "id": 10,
                            "line_key": "4|v|large-walnut",
                            "variant_id": "large-walnut",
                            "quantity": 2,
                            "unit_price": "4999.00",
                            "line_total": "9998.00",
                        }
                    ],
                    "item_count": 2,
                    "coupon_code": None,
                    "subtotal": "9998.00",
                    "discount": "0.00",
                    "total": "9998.00",
                },
            )
        ],
    )
    def get(self, request):
        return Response(_cart_data(cart_owner(request)), status=status.HTTP_200_OK)


class CartAddItemView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description="Validates availability without reserving stock; repeated adds merge into one line.",
        request=AddItemSerializer,
        parameters=[SESSION_HEADER],
        responses={201: CartReadSerializer},
        examples=[
            OpenApiExample("By code", value={"product_id": 4, "variant_id": "large-walnut", "quantity": 1}),
            OpenApiExample(
                "Insufficient",
                value={"detail": "Insufficient stock. Requested: 5, Available: 3", "code": "insufficient_stock", "available": 3},
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        owner = cart_owner(request)
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        add_line(**owner, **serializer.validated_data)
        return Response(_cart_data(owner), status=status.HTTP_201_CREATED)


class CartItemView(APIView):
    """Update the quantity of, or remove, one cart line."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description=(
            "Quantity 0 removes the line. An update that would oversell leaves the line "
            "unchanged and returns applied=false with the current availability."
        ),
        request=UpdateItemQuantitySerializer,
        parameters=[SESSION_HEADER],
        responses={
            200: inline_serializer(
                name="CartItemUpdatedResponse",
                fields={
                    "applied": rf_serializers.BooleanField(),
                    "available": rf_serializers.IntegerField(),
                    "cart": CartReadSerializer(),
                },
            )
        },
    )
    def patch(self, request, item_id: int):
        owner = cart_owner(request)
        item = _owned_item(owner, item_id)
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        outcome = update_quantity(line_key=item.line_key, quantity=serializer.validated_data["quantity"], **owner)
        return Response(
            {"applied": outcome.applied, "available": outcome.available, "cart": _cart_data(owner)},
            status=status.HTTP_200_OK,
        )

    @extend_schema(tags=["Cart Endpoints"], summary="Delete cart item", parameters=[SESSION_HEADER], responses={204: None})
    def delete(self, request, item_id: int):
        owner = cart_owner(request)
        item = _owned_item(owner, item_id)
        remove_line(line_key=item.line_key, **owner)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartClearView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        parameters=[SESSION_HEADER],
        responses={200: inline_serializer(name="CartStatusCleared", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Cleared", value={"status": "cleared"})],
    )
    def post(self, request):
        clear_cart(**cart_owner(request))
        return Response({"status": "cleared"}, status=status.HTTP_200_OK)


class CartAbandonView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Abandon cart",
        parameters=[SESSION_HEADER],
        responses={200: inline_serializer(name="CartStatusAbandoned", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Abandoned", value={"status": "abandoned"})],
    )
    def post(self, request):
        abandon_cart(**cart_owner(request))
        return Response({"status": "abandoned"}, status=status.HTTP_200_OK)


class CartCouponView(APIView):
    """Apply or remove the cart's coupon."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Apply coupon",
        request=CouponSerializer,
        parameters=[SESSION_HEADER],
        responses={200: CartReadSerializer},
        examples=[
            OpenApiExample(
                "Below minimum",
                value={"detail": "Minimum purchase of 5,000.00 required.", "code": "invalid_coupon"},
                response_only=True,
                status_codes=["400"],
            )
        ],
    )
    def post(self, request):
        owner = cart_owner(request)
        serializer = CouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        apply_coupon(code=serializer.validated_data["code"], **owner)
        return Response(_cart_data(owner), status=status.HTTP_200_OK)

    @extend_schema(tags=["Cart Endpoints"], summary="Remove coupon", parameters=[SESSION_HEADER], responses={200: CartReadSerializer})
    def delete(self, request):
        owner = cart_owner(request)
        remove_coupon(**owner)
        return Response(_cart_data(owner), status=status.HTTP_200_OK)


class MergeGuestCartView(APIView):
    """Merge a guest cart into the authenticated user's cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Merge guest cart into user cart",
        description="Merged quantities are capped at current availability.",
        request=MergeGuestSerializer,
        responses={200: CartReadSerializer},
    )
    def post(self, request):
        serializer = MergeGuestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        merge_guest_cart_to_user(session_id=serializer.validated_data["session_id"], user=request.user)
        return Response(_cart_data({"user": request.user}), status=status.HTTP_200_OK)


class CartCheckoutView(APIView):
    """Allocate stock for the whole cart and create an order."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Checkout cart",
        description=(
            "All lines are allocated across warehouses or none are. On failure the "
            "response lists every line that could not be fulfilled and the cart is kept."
        ),
        request=CheckoutSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={201: OrderDetailSerializer},
        examples=[
            OpenApiExample("Pickup", value={"fulfillment": "pickup", "payment_method": "cash"}, request_only=True),
            OpenApiExample(
                "Allocation failed",
                value={
                    "detail": "Some items could not be allocated.",
                    "code": "allocation_failed",
                    "errors": [{"line_index": 1, "product_id": 4, "variant_id": 12, "requested": 3, "available": 1}],
                },
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _mutate():
            order = checkout_cart(user=request.user, role=role_of(request.user), **serializer.validated_data)
            return _detail(order.id)

        return idempotent_response(request, _mutate, success_status=status.HTTP_201_CREATED)
