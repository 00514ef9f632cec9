"""Account services.

Account creation is role-gated: each role may only create the roles that
`get_creatable_roles` lists for it (owners can create admins, admins can
create staff and clerks, staff can create walk-in customer accounts).
Role changes follow the same hierarchy in both directions: the caller must
be able to grant the account's current role and the new one.
"""

from audit.services import record
from common.choices import AuditAction, AuditTarget, Role
from common.errors import InvalidInput, NotFound, PermissionDenied
from django.db import transaction

from .models import User
from .permissions import Permission, get_creatable_roles, require_permission


@transaction.atomic
def create_account(
    *, role: str, new_role: str, username: str, email: str, password: str, actor=None, **fields
) -> User:
    if new_role not in get_creatable_roles(role):
        raise PermissionDenied()
    user = User(username=username, email=email, role=new_role, **fields)
    user.set_password(password)
    user.save()
    record(
        AuditAction.ACCOUNT_CREATED,
        target_type=AuditTarget.USER,
        target=user,
        actor=actor,
        role=role,
        metadata={"role": new_role},
    )
    return user


@transaction.atomic
def change_role(*, role: str, user_id: int, new_role: str, actor=None) -> User:
    require_permission(role, Permission.UPDATE_USER_ACCOUNTS)
    if new_role not in Role.values:
        raise InvalidInput(f"Unknown role: {new_role}")
    try:
        user = User.objects.select_for_update().get(pk=user_id)
    except User.DoesNotExist:
        raise NotFound("Account not found.")
    if getattr(actor, "pk", None) == user.pk:
        raise PermissionDenied()
    grantable = get_creatable_roles(role)
    if user.role not in grantable or new_role not in grantable:
        raise PermissionDenied()
    if user.role == new_role:
        return user

    old_role = user.role
    user.role = new_role
    user.save(update_fields=["role"])
    record(
        AuditAction.ROLE_CHANGED,
        target_type=AuditTarget.USER,
        target=user,
        actor=actor,
        role=role,
        changes=[{"field": "role", "old": old_role, "new": new_role}],
    )
    return user
