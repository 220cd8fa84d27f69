from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from dental_clinic.models.appointment import Appointment
from dental_clinic.models.inventory import (
    InventoryItem,
    InventoryBatch,
    InventoryMovement,
    MOVEMENT_CONSUME,
)
from dental_clinic.models.visit import PatientVisit
from dental_clinic.services.errors import InsufficientStock, NotFound, ValidationError
from dental_clinic.services.notification_service import notify_low_stock

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
QTY_STEP = Decimal("0.001")


# -------------------------
# Helpers
# -------------------------

def _d(v) -> Decimal:
    if v is None:
        return ZERO
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


def _q(v) -> Decimal:
    # batch quantities are stored with 3 dp
    return _d(v).quantize(QTY_STEP)


@dataclass
class Allocation:
    batch_id: int
    qty: Decimal


def get_item(db: Session, item_id: int) -> InventoryItem:
    item = db.get(InventoryItem, item_id)
    if not item:
        raise NotFound(f"Inventory item not found: {item_id}")
    return item


def fefo_batches_for_item(db: Session, item_id: int, *, lock: bool = True) -> List[InventoryBatch]:
    """
    Batches with stock, first-expiring-first-out:
    dated batches before undated, soonest expiry first, then oldest received.
    """
    q = (
        select(InventoryBatch)
        .where(
            InventoryBatch.item_id == item_id,
            InventoryBatch.qty_on_hand > 0,
        )
        .order_by(
            InventoryBatch.expiry_date.is_(None),
            InventoryBatch.expiry_date.asc(),
            InventoryBatch.received_at.asc(),
            InventoryBatch.id.asc(),
        )
    )
    if lock:
        q = q.with_for_update()
    return list(db.execute(q).scalars().all())


def total_on_hand(db: Session, item_id: int) -> Decimal:
    total = db.execute(
        select(func.coalesce(func.sum(InventoryBatch.qty_on_hand), 0))
        .where(InventoryBatch.item_id == item_id)
    ).scalar_one()
    return _d(total)


# -------------------------
# Movement recorder (append-only)
# -------------------------

def record_movement(
    db: Session,
    *,
    item_id: int,
    batch_id: Optional[int],
    quantity_change: Decimal,
    movement_type: str,
    user_id: Optional[int],
    ref_type: Optional[str] = None,
    ref_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> InventoryMovement:
    mv = InventoryMovement(
        item_id=item_id,
        batch_id=batch_id,
        type=movement_type,
        quantity_change=_d(quantity_change),
        ref_type=ref_type,
        ref_id=ref_id,
        user_id=user_id,
        notes=(notes or "").strip() or None,
    )
    db.add(mv)
    return mv


# -------------------------
# Batch allocator
# -------------------------

def allocate_item(
    db: Session,
    *,
    item_id: int,
    quantity,
    user_id: Optional[int],
    ref_type: Optional[str] = None,
    ref_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Tuple[InventoryItem, List[Allocation]]:
    """
    Deduct `quantity` of an item across its batches in FEFO order.

    Batch rows are locked FOR UPDATE for the read-modify-write. The total is
    checked before any batch is touched, so an InsufficientStock failure
    leaves every batch and the movement ledger unchanged.
    """
    req_qty = _q(quantity)
    if req_qty != _d(quantity):
        raise ValidationError("Quantity supports at most 3 decimal places")
    if req_qty <= 0:
        raise ValidationError("Quantity must be > 0")

    item = get_item(db, item_id)
    batches = fefo_batches_for_item(db, item.id)

    available = sum((_d(b.qty_on_hand) for b in batches), ZERO)
    if req_qty > available:
        raise InsufficientStock(item.name, req_qty, available)

    allocations: List[Allocation] = []
    remaining = req_qty
    for b in batches:
        if remaining <= 0:
            break
        take = min(_d(b.qty_on_hand), remaining)
        if take <= 0:
            continue

        b.qty_on_hand = _d(b.qty_on_hand) - take
        record_movement(
            db,
            item_id=item.id,
            batch_id=b.id,
            quantity_change=-take,
            movement_type=MOVEMENT_CONSUME,
            user_id=user_id,
            ref_type=ref_type,
            ref_id=ref_id,
            notes=notes,
        )
        allocations.append(Allocation(batch_id=b.id, qty=take))
        remaining -= take

    logger.info(
        "Allocated item=%s qty=%s over %d batch(es) ref=%s:%s user=%s",
        item.id, req_qty, len(allocations), ref_type, ref_id, user_id,
    )
    return item, allocations


# -------------------------
# Low-stock check
# -------------------------

def alert_low_stock(db: Session, items: Iterable[InventoryItem]) -> List[int]:
    """
    Attempt one low-stock notification per distinct item at or below its
    threshold. Each attempt runs in a savepoint; failures are logged and
    never propagate. Returns the ids of items an alert was attempted for.
    """
    attempted: List[int] = []
    seen = set()
    db.flush()
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)

        threshold = int(item.low_stock_threshold or 0)
        if threshold <= 0:
            continue

        on_hand = total_on_hand(db, item.id)
        if on_hand > threshold:
            continue

        attempted.append(item.id)
        try:
            with db.begin_nested():
                notify_low_stock(db, item, on_hand)
        except Exception:
            logger.warning("Low-stock notification failed for item %s", item.id, exc_info=True)

    return attempted


# -------------------------
# Ad hoc consumption
# -------------------------

REF_MODELS = {
    "visit": PatientVisit,
    "appointment": Appointment,
}


def _require_ref(db: Session, ref_type: Optional[str], ref_id: Optional[int]) -> None:
    if ref_type is None and ref_id is None:
        return
    model = REF_MODELS.get(ref_type or "")
    if model is None or ref_id is None:
        raise ValidationError("ref_type and ref_id must be given together")
    if db.get(model, ref_id) is None:
        raise NotFound(f"{ref_type.capitalize()} not found: {ref_id}")


def consume_stock(
    db: Session,
    *,
    user_id: Optional[int],
    item_id: int,
    quantity,
    ref_type: Optional[str] = None,
    ref_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> dict:
    try:
        _require_ref(db, ref_type, ref_id)
        item, allocations = allocate_item(
            db,
            item_id=item_id,
            quantity=quantity,
            user_id=user_id,
            ref_type=ref_type,
            ref_id=ref_id,
            notes=notes,
        )
        db.flush()
        alert_low_stock(db, [item])
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {
        "item_id": item_id,
        "consumed_total": sum((a.qty for a in allocations), ZERO),
        "allocations": [{"batch_id": a.batch_id, "qty": a.qty} for a in allocations],
    }


# -------------------------
# Queries
# -------------------------

def list_batches(db: Session, item_id: int) -> List[InventoryBatch]:
    get_item(db, item_id)
    return list(db.execute(
        select(InventoryBatch)
        .where(InventoryBatch.item_id == item_id)
        .order_by(
            InventoryBatch.expiry_date.is_(None),
            InventoryBatch.expiry_date.asc(),
            InventoryBatch.received_at.asc(),
            InventoryBatch.id.asc(),
        )
    ).scalars().all())


def list_movements(db: Session, item_id: int, *, limit: int = 100) -> List[InventoryMovement]:
    get_item(db, item_id)
    return list(db.execute(
        select(InventoryMovement)
        .where(InventoryMovement.item_id == item_id)
        .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .limit(limit)
    ).scalars().all())
