"""Warehouse allocation planner.

``allocate`` decides which warehouse(s) fulfil each checkout line in two
phases. The dry-run reads availability for every line and fails the whole
batch if any line is short; only then does it reserve, one ledger call per
(variant, warehouse) share. A reserve that loses a race releases everything
reserved so far in the batch.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from common.choices import Warehouse
from common.errors import ConcurrentStockChange, InsufficientStock, InvalidInput
from django.conf import settings
from django.db import transaction

from . import services as ledger
from .selectors import available_by_warehouse

logger = logging.getLogger("furnish.inventory")


@dataclass(frozen=True)
class AllocationRequest:
    product_id: int
    variant_id: int
    quantity: int


@dataclass(frozen=True)
class StockAllocation:
    line_index: int
    product_id: int
    variant_id: int
    warehouse: str
    quantity: int
    reservation_id: Optional[int] = None


@dataclass(frozen=True)
class AllocationError:
    line_index: int
    product_id: int
    variant_id: int
    requested: int
    available: int
    code: str = InsufficientStock.code

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class AllocationResult:
    success: bool
    allocated_items: List[StockAllocation] = field(default_factory=list)
    errors: List[AllocationError] = field(default_factory=list)


def warehouse_priority() -> List[str]:
    """Configured priority order, restricted to known warehouses."""

    configured = getattr(settings, "INVENTORY_WAREHOUSE_PRIORITY", None) or Warehouse.values
    known = set(Warehouse.values)
    order = [w for w in configured if w in known]
    return order + [w for w in Warehouse.values if w not in order]


def plan_line(quantity: int, available: Dict[str, int], priority: Sequence[str]) -> List[tuple]:
    """Split ``quantity`` over warehouses as ``[(warehouse, qty), ...]``.

    Prefers the first warehouse (in priority order) that covers the whole
    line; otherwise consumes warehouses in priority order. Returns an empty
    list when total availability is short.
    """

    if sum(max(0, available.get(w, 0)) for w in priority) < quantity:
        return []
    for w in priority:
        if available.get(w, 0) >= quantity:
            return [(w, quantity)]
    plan = []
    remaining = quantity
    for w in priority:
        take = min(remaining, max(0, available.get(w, 0)))
        if take:
            plan.append((w, take))
            remaining -= take
        if not remaining:
            break
    return plan


def dry_run(items: Sequence[AllocationRequest]) -> AllocationResult:
    """Plan every line against current availability without touching the ledger."""

    priority = warehouse_priority()
    remaining = available_by_warehouse({i.variant_id for i in items})
    allocations: List[StockAllocation] = []
    errors: List[AllocationError] = []
    for idx, item in enumerate(items):
        stock = remaining.setdefault(item.variant_id, {})
        plan = plan_line(int(item.quantity), stock, priority)
        if not plan:
            errors.append(
                AllocationError(
                    line_index=idx,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    requested=int(item.quantity),
                    available=sum(max(0, v) for v in stock.values()),
                )
            )
            continue
        for warehouse, qty in plan:
            # Lines sharing a variant draw from the same pool
            stock[warehouse] -= qty
            allocations.append(
                StockAllocation(
                    line_index=idx,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    warehouse=warehouse,
                    quantity=qty,
                )
            )
    if errors:
        return AllocationResult(success=False, errors=errors)
    return AllocationResult(success=True, allocated_items=allocations)


@transaction.atomic
def allocate(items: Sequence[AllocationRequest], *, reference: str = "") -> AllocationResult:
    """Dry-run all lines, then reserve every share; all or nothing."""

    if not items:
        raise InvalidInput("Nothing to allocate.")
    for item in items:
        if int(item.quantity) <= 0:
            raise InvalidInput("Quantity must be positive.")

    planned = dry_run(items)
    if not planned.success:
        logger.info(
            "inventory.allocation_failed",
            extra={"event": "inventory.allocation_failed", "reference": reference, "lines": len(planned.errors)},
        )
        return planned

    reserved: List[StockAllocation] = []
    for alloc in planned.allocated_items:
        try:
            res = ledger.reserve(
                variant_id=alloc.variant_id, warehouse=alloc.warehouse, quantity=alloc.quantity, reference=reference
            )
        except InsufficientStock as exc:
            for done in reserved:
                ledger.release_reservation(reservation_id=done.reservation_id)
            logger.warning(
                "inventory.allocation_raced",
                extra={"event": "inventory.allocation_raced", "reference": reference, "variant_id": alloc.variant_id},
            )
            return AllocationResult(
                success=False,
                errors=[
                    AllocationError(
                        line_index=alloc.line_index,
                        product_id=alloc.product_id,
                        variant_id=alloc.variant_id,
                        requested=alloc.quantity,
                        available=exc.available,
                        code=ConcurrentStockChange.code,
                    )
                ],
            )
        reserved.append(
            StockAllocation(
                line_index=alloc.line_index,
                product_id=alloc.product_id,
                variant_id=alloc.variant_id,
                warehouse=alloc.warehouse,
                quantity=alloc.quantity,
                reservation_id=res.id,
            )
        )
    return AllocationResult(success=True, allocated_items=reserved)


# EOF
