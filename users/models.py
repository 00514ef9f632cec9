"""User model for authentication and role assignment.

This module defines the custom `User` model which extends Django's
`AbstractUser` with a unique email, a contact phone and the RBAC `role`
label consumed by `users.permissions`.
"""

from common.choices import Role
from django.contrib.auth.models import AbstractUser
from django.core.validators import RegexValidator
from django.db import models


class User(AbstractUser):
    """Custom user with unique email and a single role.

    Fields:
    - email: the primary email, unique at the database level (normalized).
    - phone: optional contact number in E.164 format.
    - role: one of the closed `Role` labels; defaults to customer.
    """

    email = models.EmailField(unique=True)
    phone = models.CharField(
        max_length=16,
        blank=True,
        validators=[RegexValidator(r"^\+?[1-9]\d{1,14}$", message="Use E.164 format (e.g., +639171234567)")],
        help_text="Primary contact number for the account in E.164 format",
    )
    role = models.CharField(max_length=32, choices=Role.choices, default=Role.CUSTOMER, db_index=True)

    def save(self, *args, **kwargs):
        """Normalize email and phone, then persist."""
        if self.email:
            self.email = self.email.strip().lower()
        if self.phone:
            self.phone = self.phone.strip()
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return self.get_full_name() or self.username
