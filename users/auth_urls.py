"""Authentication routes grouped under /api/v1/auth.

Includes JWT obtain (email or phone) and refresh.
"""

from django.urls import path

from .views import RefreshView, SignInView

urlpatterns = [
    path("signin/", SignInView.as_view(), name="signin"),
    path("refresh/", RefreshView.as_view(), name="token_refresh"),
]
