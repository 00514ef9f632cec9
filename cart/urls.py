"""Cart URL routes (v1)."""

from django.urls import path

from .views import (
    CartAbandonView,
    CartAddItemView,
    CartCheckoutView,
    CartClearView,
    CartCouponView,
    CartDetailView,
    CartItemView,
    MergeGuestCartView,
)

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("items/", CartAddItemView.as_view(), name="cart-add-item"),
    path("items/<int:item_id>/", CartItemView.as_view(), name="cart-item"),
    path("coupon/", CartCouponView.as_view(), name="cart-coupon"),
    path("checkout/", CartCheckoutView.as_view(), name="cart-checkout"),
    path("abandon/", CartAbandonView.as_view(), name="cart-abandon"),
    path("clear/", CartClearView.as_view(), name="cart-clear"),
    path("merge-guest/", MergeGuestCartView.as_view(), name="cart-merge-guest"),
]
