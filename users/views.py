"""Users app API views.

Endpoints include:
- signin / refresh: JWT obtain (email or phone) and refresh.
- profile: the current user's profile with role and effective permissions.
- accounts: role-gated account creation for staff, admin and owner.
- accounts/<id>/role: role changes within the caller's grantable roles.
"""

from common.api import role_of
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .logging import log_auth_event
from .serializers import (
    AccountCreateSerializer,
    EmailOrPhoneTokenObtainPairSerializer,
    RoleChangeSerializer,
    UserMeSerializer,
)
from .services import change_role, create_account


@extend_schema(
    operation_id="users_current_user",
    summary="Get current user profile",
    description=(
        "Returns the current authenticated user's profile, role, effective permissions and the roles "
        "this user may create.\n\nErrors: 401 if authentication credentials are missing or invalid."
    ),
    tags=["User Endpoints"],
    responses={
        200: OpenApiResponse(description="User profile", response=UserMeSerializer),
        401: OpenApiResponse(description="Unauthorized"),
    },
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def current_user(request):
    """Return the authenticated user's profile and permissions."""
    log_auth_event("profile", request, user=request.user)
    return Response(UserMeSerializer(request.user).data)


current_user.throttle_scope = "profile"


@extend_schema(
    tags=["User Endpoints"],
    summary="Create account",
    description="Creates an account with the requested role if the caller's role may grant it (403 otherwise).",
    request=AccountCreateSerializer,
    responses={201: UserMeSerializer},
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def accounts(request):
    serializer = AccountCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = dict(serializer.validated_data)
    user = create_account(role=role_of(request.user), new_role=data.pop("role"), actor=request.user, **data)
    log_auth_event("account_created", request, user=user, extra={"created_by": request.user.id, "role": user.role})
    return Response(UserMeSerializer(user).data, status=status.HTTP_201_CREATED)


accounts.throttle_scope = "register"


@extend_schema(
    tags=["User Endpoints"],
    summary="Change account role",
    description=(
        "Admins and owners may move an account between the roles they can grant. "
        "403 for your own account or a role outside your hierarchy."
    ),
    request=RoleChangeSerializer,
    responses={200: UserMeSerializer},
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([ScopedRateThrottle])
def account_role(request, user_id: int):
    serializer = RoleChangeSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = change_role(
        role=role_of(request.user), user_id=user_id, new_role=serializer.validated_data["role"], actor=request.user
    )
    log_auth_event("role_changed", request, user=user, extra={"changed_by": request.user.id})
    return Response(UserMeSerializer(user).data)


account_role.throttle_scope = "register"


class SignInView(TokenObtainPairView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "signin"
    serializer_class = EmailOrPhoneTokenObtainPairSerializer

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("signin", request, status=status_label)
        return resp


class RefreshView(TokenRefreshView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "token_refresh"

    @extend_schema(tags=["User Endpoints"])
    def post(self, request, *args, **kwargs):
        resp = super().post(request, *args, **kwargs)
        status_label = "success" if resp.status_code == 200 else "failed"
        log_auth_event("token_refresh", request, status=status_label)
        return resp
