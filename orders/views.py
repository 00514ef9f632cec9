"""Orders API endpoints.

Views resolve the caller's role and hand off to ``orders.services`` /
``orders.refunds``, which re-check RBAC themselves. Mutations accept an
optional ``Idempotency-Key`` header; the stored response (success or
classified failure) is replayed for the same caller, path and method.
"""

from common.api import error_body, role_of, status_for
from common.errors import CoreError, NotFound
from django.contrib.auth import get_user_model
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from users.permissions import HasPermission, Permission

from . import selectors
from .models import Order
from .refunds import process_refund
from .serializers import (
    CancelSerializer,
    ManualOrderSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    RefundRequestSerializer,
    RefundSerializer,
    TransitionSerializer,
    VerifyPaymentSerializer,
)
from .services import (
    OrderLine,
    cancel_order,
    compute_request_hash,
    create_order,
    request_refund,
    transition_status,
    verify_payment,
    with_idempotency,
)
from .transitions import allowed_transitions

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)


def idempotent_response(request, mutate, *, success_status: int = status.HTTP_200_OK) -> Response:
    """Run ``mutate()`` (returning response data) under the request's Idempotency-Key, if any."""

    def _handler():
        try:
            return mutate(), success_status
        except CoreError as exc:
            return error_body(exc), status_for(exc)

    idem_key = request.headers.get("Idempotency-Key")
    if idem_key:
        body, code = with_idempotency(
            key=idem_key,
            user=request.user,
            path=str(request.path),
            method=str(request.method),
            request_hash=compute_request_hash(getattr(request, "data", None)),
            handler=_handler,
        )
        return Response(body, status=code)
    body, code = _handler()
    return Response(body, status=code)


def _detail(order_id: int) -> dict:
    return OrderDetailSerializer(Order.objects.prefetch_related("items", "events").get(pk=order_id)).data


class OrderListView(generics.ListAPIView):
    """List orders visible to the caller with basic filters.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    - `start`: ISO date/time string; filters `created_at >= start`
    - `end`: ISO date/time string; filters `created_at <= end`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    throttle_scope = "orders"

    def get_queryset(self):
        qs = selectors.visible_orders(role=role_of(self.request.user), user=self.request.user).order_by("-id")
        params = self.request.query_params
        if params.get("status"):
            qs = qs.filter(status=params["status"])
        if params.get("number"):
            qs = qs.filter(number=params["number"])
        if params.get("start"):
            qs = qs.filter(created_at__gte=params["start"])
        if params.get("end"):
            qs = qs.filter(created_at__lte=params["end"])
        return qs

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="Staff roles see every order; customers see their own.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"

    @extend_schema(tags=["Orders"], summary="Get order detail", responses={200: OrderDetailSerializer})
    def get(self, request, order_id: int):
        order = selectors.get_visible_order(role=role_of(request.user), user=request.user, order_id=order_id)
        return Response(OrderDetailSerializer(order).data)


class ManualOrderCreateView(APIView):
    """Walk-in / phone orders entered by staff."""

    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.CREATE_MANUAL_ORDERS)]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Create manual order",
        request=ManualOrderSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={201: OrderDetailSerializer},
        examples=[
            OpenApiExample(
                "Walk-in",
                value={"items": [{"variant_id": 10, "quantity": 1}], "payment_method": "cash"},
                request_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = ManualOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        lines = [OrderLine(**line) for line in data.pop("items")]
        user_id = data.pop("user_id", None)
        customer = None
        if user_id:
            customer = get_user_model().objects.filter(pk=user_id).first()
            if customer is None:
                raise NotFound("Customer not found.")

        def _mutate():
            order = create_order(
                role=role_of(request.user), actor=request.user, lines=lines, user=customer, manual=True, **data
            )
            return _detail(order.id)

        return idempotent_response(request, _mutate, success_status=status.HTTP_201_CREATED)


class OrderTransitionView(APIView):
    """Read the allowed next statuses, or move the order to one of them."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Allowed transitions",
        examples=[OpenApiExample("Allowed", value={"status": "processing", "allowed": ["cancelled", "ready-for-pickup"]})],
    )
    def get(self, request, order_id: int):
        role = role_of(request.user)
        order = selectors.get_visible_order(role=role, user=request.user, order_id=order_id)
        return Response({"status": order.status, "allowed": sorted(allowed_transitions(order, role))})

    @extend_schema(
        tags=["Orders"],
        summary="Transition order status",
        request=TransitionSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={200: OrderDetailSerializer},
        examples=[
            OpenApiExample(
                "Invalid transition",
                value={
                    "detail": "Cannot move order from ready-for-pickup to processing.",
                    "code": "invalid_state_transition",
                    "current_state": "ready-for-pickup",
                    "attempted": "processing",
                    "allowed": ["cancelled", "completed"],
                },
                response_only=True,
                status_codes=["409"],
            )
        ],
    )
    def post(self, request, order_id: int):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _mutate():
            transition_status(
                order_id=order_id,
                new_status=serializer.validated_data["status"],
                role=role_of(request.user),
                actor=request.user,
                notes=serializer.validated_data.get("notes", ""),
            )
            return _detail(order_id)

        return idempotent_response(request, _mutate)


class OrderCancelView(APIView):
    """Cancel an order; cancelling twice returns the same cancelled order."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        request=CancelSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={200: OrderDetailSerializer},
    )
    def post(self, request, order_id: int):
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _mutate():
            cancel_order(
                order_id=order_id,
                role=role_of(request.user),
                actor=request.user,
                reason=serializer.validated_data.get("reason", ""),
            )
            return _detail(order_id)

        return idempotent_response(request, _mutate)


class OrderRefundRequestView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Request refund",
        description="Customer flags items (by index) of their completed or cancelled order for refund.",
        request=RefundRequestSerializer,
        responses={200: OrderDetailSerializer},
    )
    def post(self, request, order_id: int):
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        def _mutate():
            request_refund(
                order_id=order_id,
                role=role_of(request.user),
                actor=request.user,
                item_indices=data["items"],
                reason=data["reason"],
                proof=data.get("proof", ""),
            )
            return _detail(order_id)

        return idempotent_response(request, _mutate)


class OrderRefundView(APIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.PROCESS_REFUNDS)]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Process refund",
        description="Records a full (no items_refunded) or partial refund. A second refund fails with 409.",
        request=RefundSerializer,
        parameters=[IDEMPOTENCY_HEADER],
        responses={200: OrderDetailSerializer},
        examples=[
            OpenApiExample(
                "Partial",
                value={
                    "refund_method": "gcash",
                    "refund_amount": "300.00",
                    "refund_reason": "Damaged leg",
                    "items_refunded": [0],
                },
                request_only=True,
            )
        ],
    )
    def post(self, request, order_id: int):
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        def _mutate():
            process_refund(order_id=order_id, role=role_of(request.user), actor=request.user, **serializer.validated_data)
            return _detail(order_id)

        return idempotent_response(request, _mutate)


class OrderVerifyPaymentView(APIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.UPDATE_ORDER_STATUS)]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Verify payment",
        request=VerifyPaymentSerializer,
        responses={200: OrderDetailSerializer},
    )
    def post(self, request, order_id: int):
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        verify_payment(order_id=order_id, role=role_of(request.user), actor=request.user, **serializer.validated_data)
        return Response(_detail(order_id))


class RefundRequestListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated, HasPermission.for_(Permission.VIEW_REFUND_REQUESTS)]
    serializer_class = OrderSerializer
    throttle_scope = "orders"

    def get_queryset(self):
        return selectors.list_refund_requests(role=role_of(self.request.user)).order_by("-id")

    @extend_schema(tags=["Orders"], summary="List pending refund requests")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)
