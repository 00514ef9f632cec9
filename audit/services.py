"""Write side of the audit trail.

Mutating services call ``record`` inside their own transaction, so an audit
row exists exactly when the change it describes was committed.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .models import AuditEvent


def _display(value) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    return str(value)


def snapshot(instance, fields: Iterable[str]) -> Dict[str, str]:
    """Current display values of ``fields``; relations are captured by id."""

    values = {}
    for name in fields:
        field = instance._meta.get_field(name)
        values[name] = _display(getattr(instance, field.attname))
    return values


def field_changes(before: Dict[str, str], after: Dict[str, str]) -> List[dict]:
    return [
        {"field": name, "old": before.get(name, ""), "new": after.get(name, "")}
        for name in after
        if before.get(name, "") != after.get(name, "")
    ]


def _actor_name(actor) -> str:
    if not getattr(actor, "pk", None):
        return ""
    return actor.get_full_name() or actor.email or actor.username


def record(
    action: str,
    *,
    target_type: str,
    target,
    actor=None,
    role: str = "",
    changes: Optional[List[dict]] = None,
    metadata: Optional[dict] = None,
) -> AuditEvent:
    return AuditEvent.objects.create(
        action=action,
        target_type=target_type,
        target_id=str(target.pk),
        target_name=str(target)[:255],
        actor=actor if getattr(actor, "pk", None) else None,
        actor_name=_actor_name(actor),
        role=role or "",
        changes=changes or [],
        metadata=metadata or {},
    )
