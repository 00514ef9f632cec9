"""Taxonomy services: add/update/deactivate/reactivate vocabulary entries.

Names are matched case-insensitively after trimming. Adding a name that
matches an inactive entry reactivates that entry instead of creating a
second row; matching an active entry fails with ``DuplicateName``.
"""

import logging
from typing import Dict, Type

from audit.services import field_changes, record, snapshot
from common.choices import AuditAction, AuditTarget
from common.errors import DuplicateName, InvalidInput, NotFound
from django.db import transaction
from users.permissions import Permission, require_permission

from .models import Color, MainCategory, Material, SubCategory, TaxonomyEntry

logger = logging.getLogger("furnish.taxonomy")

KINDS: Dict[str, Type[TaxonomyEntry]] = {
    "main-categories": MainCategory,
    "sub-categories": SubCategory,
    "materials": Material,
    "colors": Color,
}


def model_for(kind: str) -> Type[TaxonomyEntry]:
    try:
        return KINDS[kind]
    except KeyError:
        raise NotFound(f"Unknown taxonomy kind: {kind}")


def _clean_name(name) -> str:
    cleaned = " ".join(str(name or "").split())
    if not cleaned:
        raise InvalidInput("Name is required.")
    return cleaned


def _scope(model: Type[TaxonomyEntry], values: dict) -> dict:
    return {f: values.get(f) for f in model.scope_fields}


def _find_by_name(model, name: str, scope: dict, *, active=None, exclude_id=None):
    qs = model.objects.filter(name__iexact=name, **scope)
    if active is not None:
        qs = qs.filter(is_active=active)
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs.order_by("id").first()


def _get(model, entry_id: int):
    try:
        return model.objects.select_for_update().get(id=entry_id)
    except model.DoesNotExist:
        raise NotFound(f"{model._meta.verbose_name.capitalize()} not found.")


def _log(event: str, entry: TaxonomyEntry) -> None:
    logger.info(event, extra={"event": event, "kind": entry._meta.model_name, "entry_id": entry.id, "name": entry.name})


def _audit(action: str, entry: TaxonomyEntry, *, kind: str, actor, role: str, changes=None) -> None:
    record(
        action,
        target_type=AuditTarget.TAXONOMY,
        target=entry,
        actor=actor,
        role=role,
        changes=changes,
        metadata={"kind": kind},
    )


@transaction.atomic
def add_entry(*, kind: str, role: str, name: str, actor=None, **fields) -> TaxonomyEntry:
    require_permission(role, Permission.CREATE_PRODUCTS)
    model = model_for(kind)
    name = _clean_name(name)
    scope = _scope(model, fields)

    if _find_by_name(model, name, scope, active=True) is not None:
        raise DuplicateName(name)
    existing = _find_by_name(model, name, scope, active=False)
    if existing is not None:
        existing.is_active = True
        existing.save(update_fields=["is_active", "updated_at"])
        _log("taxonomy.reactivated", existing)
        _audit(AuditAction.TAXONOMY_REACTIVATED, existing, kind=kind, actor=actor, role=role)
        return existing

    entry = model.objects.create(name=name, **fields)
    _log("taxonomy.added", entry)
    _audit(AuditAction.TAXONOMY_CREATED, entry, kind=kind, actor=actor, role=role)
    return entry


@transaction.atomic
def update_entry(*, kind: str, role: str, entry_id: int, actor=None, **changes) -> TaxonomyEntry:
    require_permission(role, Permission.CREATE_PRODUCTS)
    model = model_for(kind)
    entry = _get(model, entry_id)
    unknown = set(changes) - {f.name for f in model._meta.fields}
    if unknown:
        raise InvalidInput(f"Unknown fields: {', '.join(sorted(unknown))}")
    before = snapshot(entry, changes)
    if "name" in changes:
        changes["name"] = _clean_name(changes["name"])
    for field, value in changes.items():
        setattr(entry, field, value)
    scope = {f: getattr(entry, f) for f in model.scope_fields}
    if entry.is_active and _find_by_name(model, entry.name, scope, active=True, exclude_id=entry.id):
        raise DuplicateName(entry.name)
    entry.save()
    _log("taxonomy.updated", entry)
    diff = field_changes(before, snapshot(entry, changes))
    if diff:
        _audit(AuditAction.TAXONOMY_MODIFIED, entry, kind=kind, actor=actor, role=role, changes=diff)
    return entry


@transaction.atomic
def deactivate_entry(*, kind: str, role: str, entry_id: int, actor=None) -> TaxonomyEntry:
    """Soft delete; products already referencing the entry are unaffected."""

    require_permission(role, Permission.CREATE_PRODUCTS)
    entry = _get(model_for(kind), entry_id)
    if entry.is_active:
        entry.is_active = False
        entry.save(update_fields=["is_active", "updated_at"])
        _log("taxonomy.deactivated", entry)
        _audit(AuditAction.TAXONOMY_DELETED, entry, kind=kind, actor=actor, role=role)
    return entry


@transaction.atomic
def reactivate_entry(*, kind: str, role: str, entry_id: int, actor=None) -> TaxonomyEntry:
    require_permission(role, Permission.CREATE_PRODUCTS)
    model = model_for(kind)
    entry = _get(model, entry_id)
    if entry.is_active:
        return entry
    scope = {f: getattr(entry, f) for f in model.scope_fields}
    if _find_by_name(model, entry.name, scope, active=True, exclude_id=entry.id):
        raise DuplicateName(entry.name)
    entry.is_active = True
    entry.save(update_fields=["is_active", "updated_at"])
    _log("taxonomy.reactivated", entry)
    _audit(AuditAction.TAXONOMY_REACTIVATED, entry, kind=kind, actor=actor, role=role)
    return entry
