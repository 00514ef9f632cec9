"""Account routes grouped under /api/v1/account.

Includes the profile (role and permissions), role-gated account creation
and role changes.
"""

from django.urls import path

from .views import account_role, accounts, current_user

urlpatterns = [
    path("profile/", current_user, name="profile"),
    path("accounts/", accounts, name="accounts"),
    path("accounts/<int:user_id>/role/", account_role, name="account-role"),
]
