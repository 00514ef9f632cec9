"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import (
    ManualOrderCreateView,
    OrderCancelView,
    OrderDetailView,
    OrderListView,
    OrderRefundRequestView,
    OrderRefundView,
    OrderTransitionView,
    OrderVerifyPaymentView,
    RefundRequestListView,
)

app_name = "orders"

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("manual/", ManualOrderCreateView.as_view(), name="order-manual"),
    path("refund-requests/", RefundRequestListView.as_view(), name="order-refund-requests"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/transitions/", OrderTransitionView.as_view(), name="order-transitions"),
    path("<int:order_id>/cancel/", OrderCancelView.as_view(), name="order-cancel"),
    path("<int:order_id>/refund-request/", OrderRefundRequestView.as_view(), name="order-refund-request"),
    path("<int:order_id>/refund/", OrderRefundView.as_view(), name="order-refund"),
    path("<int:order_id>/verify-payment/", OrderVerifyPaymentView.as_view(), name="order-verify-payment"),
]
