"""Inventory ledger: transactional per-(variant, warehouse) stock mutations.

Every function locks the affected ``StockItem`` row with
``select_for_update`` before reading ``available`` so that concurrent
reserve/release/commit/adjust calls on the same key are serialized.
"""

import logging
import secrets
from typing import Optional

from catalog.models import ProductVariant
from common.choices import Warehouse
from common.errors import InsufficientStock, InvalidAdjustment, InvalidInput, NotFound
from django.db import IntegrityError, transaction
from django.utils import timezone
from users.permissions import Permission, require_permission

from .models import InventoryBatch, StockItem, StockReservation

logger = logging.getLogger("furnish.inventory")

BATCH_ID_ATTEMPTS = 5


def _log(event: str, **fields) -> None:
    try:
        logger.info(event, extra={"event": event, **fields})
    except Exception:
        # Logging should never break mutations
        pass


def _check_warehouse(warehouse: str) -> None:
    if warehouse not in Warehouse.values:
        raise InvalidInput(f"Unknown warehouse: {warehouse}")


def _lock(*, variant_id: int, warehouse: str, create: bool = False) -> Optional[StockItem]:
    _check_warehouse(warehouse)
    qs = StockItem.objects.select_for_update()
    if create:
        item, _ = qs.get_or_create(variant_id=variant_id, warehouse=warehouse, defaults={"quantity": 0, "reserved": 0})
        return item
    try:
        return qs.get(variant_id=variant_id, warehouse=warehouse)
    except StockItem.DoesNotExist:
        return None


def generate_batch_id(now=None) -> str:
    """Return ``BATCH-YYYYMMDD-HHMMSS-NNN`` for the given moment."""

    now = now or timezone.now()
    return f"BATCH-{now:%Y%m%d}-{now:%H%M%S}-{secrets.randbelow(1000):03d}"


def _append_batch(*, item: StockItem, delta: int, notes: str = "", actor=None) -> InventoryBatch:
    notes = notes or (f"Added {delta} units" if delta > 0 else f"Removed {abs(delta)} units")
    now = timezone.now()
    for attempt in range(BATCH_ID_ATTEMPTS):
        try:
            with transaction.atomic():
                return InventoryBatch.objects.create(
                    stock_item=item,
                    batch_id=generate_batch_id(now),
                    received_at=now,
                    quantity=delta,
                    notes=notes[:200],
                    created_by=actor if getattr(actor, "pk", None) else None,
                )
        except IntegrityError:
            if attempt == BATCH_ID_ATTEMPTS - 1:
                raise
    raise AssertionError("unreachable")  # pragma: no cover


@transaction.atomic
def adjust_stock(
    *,
    variant_id: int,
    warehouse: str,
    new_quantity: int,
    new_reserved: Optional[int] = None,
    role: str,
    actor=None,
    notes: str = "",
) -> StockItem:
    """Overwrite quantity/reserved for one stock row and log the delta as a batch.

    ``new_reserved`` defaults to the current reserved figure. A zero quantity
    delta writes no batch.
    """

    require_permission(role, Permission.MANAGE_INVENTORY)
    new_quantity = int(new_quantity)
    if new_quantity < 0 or (new_reserved is not None and int(new_reserved) < 0):
        raise InvalidInput("Quantities must not be negative.")
    _check_warehouse(warehouse)
    if not ProductVariant.objects.filter(pk=variant_id).exists():
        raise NotFound("Variant not found.")

    item = _lock(variant_id=variant_id, warehouse=warehouse, create=True)
    reserved = int(item.reserved) if new_reserved is None else int(new_reserved)
    if reserved > new_quantity:
        raise InvalidAdjustment()

    delta = new_quantity - int(item.quantity)
    item.quantity = new_quantity
    item.reserved = reserved
    item.save(update_fields=["quantity", "reserved", "updated_at"])
    if delta:
        _append_batch(item=item, delta=delta, notes=notes, actor=actor)
    _log(
        "inventory.adjusted",
        variant_id=variant_id,
        warehouse=warehouse,
        quantity=new_quantity,
        reserved=reserved,
        delta=delta,
        actor_id=getattr(actor, "pk", None),
    )
    return item


@transaction.atomic
def reserve(*, variant_id: int, warehouse: str, quantity: int, reference: str = "") -> StockReservation:
    """Hold ``quantity`` units at one warehouse, or fail without side effects."""

    if int(quantity) <= 0:
        raise InvalidInput("Reservation quantity must be positive.")
    item = _lock(variant_id=variant_id, warehouse=warehouse)
    available = item.available if item else 0
    if item is None or quantity > available:
        raise InsufficientStock(available=available, requested=quantity, variant_id=variant_id, warehouse=warehouse)
    item.reserved = int(item.reserved) + int(quantity)
    item.save(update_fields=["reserved", "updated_at"])
    res = StockReservation.objects.create(
        variant_id=variant_id,
        warehouse=warehouse,
        quantity=quantity,
        reference=reference,
        state=StockReservation.STATE_ACTIVE,
    )
    _log("inventory.reserved", variant_id=variant_id, warehouse=warehouse, quantity=quantity, reference=reference)
    return res


@transaction.atomic
def release(*, variant_id: int, warehouse: str, quantity: int) -> None:
    """Give back held units; reserved is floored at zero."""

    item = _lock(variant_id=variant_id, warehouse=warehouse)
    if item is None:
        return
    item.reserved = max(0, int(item.reserved) - int(quantity))
    item.save(update_fields=["reserved", "updated_at"])
    _log("inventory.released", variant_id=variant_id, warehouse=warehouse, quantity=quantity)


@transaction.atomic
def commit(*, variant_id: int, warehouse: str, quantity: int) -> None:
    """Turn held units into a permanent deduction."""

    item = _lock(variant_id=variant_id, warehouse=warehouse)
    if item is None or int(quantity) > int(item.quantity):
        raise InvalidAdjustment("Insufficient stock to commit reservation.")
    item.reserved = max(0, int(item.reserved) - int(quantity))
    item.quantity = int(item.quantity) - int(quantity)
    item.save(update_fields=["quantity", "reserved", "updated_at"])
    _log("inventory.committed", variant_id=variant_id, warehouse=warehouse, quantity=quantity)


def _settle(reservation_id: int, state: str) -> bool:
    try:
        res = StockReservation.objects.select_for_update().get(id=reservation_id)
    except StockReservation.DoesNotExist:
        return False
    if res.state != StockReservation.STATE_ACTIVE:
        return False
    if state == StockReservation.STATE_COMMITTED:
        commit(variant_id=res.variant_id, warehouse=res.warehouse, quantity=res.quantity)
    else:
        release(variant_id=res.variant_id, warehouse=res.warehouse, quantity=res.quantity)
    res.state = state
    res.save(update_fields=["state", "updated_at"])
    return True


@transaction.atomic
def release_reservation(*, reservation_id: int) -> bool:
    """Release an active reservation; returns False if it was already settled."""

    return _settle(reservation_id, StockReservation.STATE_RELEASED)


@transaction.atomic
def commit_reservation(*, reservation_id: int) -> bool:
    """Commit an active reservation; returns False if it was already settled."""

    return _settle(reservation_id, StockReservation.STATE_COMMITTED)


# EOF
