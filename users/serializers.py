"""Serializers for user profile, sign-in and staff-created accounts.

- UserMeSerializer: profile data plus the caller's role and permissions.
- EmailOrPhoneTokenObtainPairSerializer: obtain JWTs using email or phone.
- AccountCreateSerializer: input for staff/admin/owner account creation.
"""

from common.choices import Role
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import User
from .permissions import get_creatable_roles, get_role_permissions


class UserMeSerializer(serializers.ModelSerializer):
    """Serializer returning basic profile fields for the current user."""

    permissions = serializers.SerializerMethodField()
    creatable_roles = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "username", "email", "first_name", "last_name", "phone", "role", "permissions", "creatable_roles"]

    def get_permissions(self, obj) -> list:
        return get_role_permissions(obj.role)

    def get_creatable_roles(self, obj) -> list:
        return [str(r) for r in get_creatable_roles(obj.role)]


class AccountCreateSerializer(serializers.Serializer):
    """Action serializer to create an account with a given role.

    Validates uniqueness of `username` and `email` and enforces Django
    password validators. Whether the caller may grant `role` is decided by
    `users.services.create_account`.
    """

    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
    role = serializers.ChoiceField(choices=Role.choices, default=Role.CUSTOMER)
    first_name = serializers.CharField(required=False, allow_blank=True)
    last_name = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=16)

    def validate_username(self, value: str) -> str:
        if User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("Username is already taken.")
        return value

    def validate_email(self, value: str) -> str:
        value = value.strip().lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError("Email is already registered.")
        return value

    def validate_password(self, value: str) -> str:
        from django.contrib.auth.password_validation import validate_password

        user = User(username=self.initial_data.get("username", ""), email=self.initial_data.get("email", ""))
        validate_password(value, user=user)
        return value


class EmailOrPhoneTokenObtainPairSerializer(serializers.Serializer):
    """Obtain JWTs by authenticating with either email or phone.

    Accepts a single `identifier` field which may be an email address
    (case-insensitive) or an E.164 phone number, and a `password`.
    Returns `access` and `refresh` tokens on success.
    """

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        identifier = (attrs.get("identifier") or "").strip()
        password = attrs.get("password") or ""

        if not identifier or not password:
            raise serializers.ValidationError({"detail": "identifier and password are required."})

        lookup = {"email": identifier.lower()} if "@" in identifier else {"phone": identifier}
        user = User.objects.filter(**lookup).first()

        if not user or not user.check_password(password) or not user.is_active:
            raise serializers.ValidationError({"detail": "Invalid credentials."})

        refresh = RefreshToken.for_user(user)
        return {"access": str(refresh.access_token), "refresh": str(refresh), "role": user.role}


class RoleChangeSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)
