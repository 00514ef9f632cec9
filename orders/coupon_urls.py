"""Admin coupon routes (v1)."""

from django.urls import path

from .coupon_views import CouponActivationView, CouponDetailView, CouponListCreateView

app_name = "coupons"

urlpatterns = [
    path("", CouponListCreateView.as_view(), name="coupon-list"),
    path("<int:coupon_id>/", CouponDetailView.as_view(), name="coupon-detail"),
    path("<int:coupon_id>/activate/", CouponActivationView.as_view(active=True), name="coupon-activate"),
    path("<int:coupon_id>/deactivate/", CouponActivationView.as_view(active=False), name="coupon-deactivate"),
]
