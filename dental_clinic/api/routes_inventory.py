from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dental_clinic.api.deps import get_db, staff_user
from dental_clinic.models.user import User
from dental_clinic.schemas.inventory import BatchOut, ConsumeIn, ConsumeOut, MovementOut
from dental_clinic.services.inventory_service import (
    consume_stock,
    list_batches,
    list_movements,
)
from dental_clinic.utils.resp import ok

router = APIRouter()


# Ad hoc consumption outside the visit flow (FEFO, same low-stock check)
@router.post("/consume")
def inventory_consume(
    payload: ConsumeIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    data = consume_stock(
        db,
        user_id=user.id,
        item_id=payload.item_id,
        quantity=payload.quantity,
        ref_type=payload.ref_type,
        ref_id=payload.ref_id,
        notes=payload.notes,
    )
    return ok(ConsumeOut.model_validate(data).model_dump(), status_code=201)


@router.get("/items/{item_id}/batches")
def inventory_item_batches(
    item_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    rows = list_batches(db, item_id)
    return ok([BatchOut.model_validate(b).model_dump() for b in rows])


@router.get("/items/{item_id}/movements")
def inventory_item_movements(
    item_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    rows = list_movements(db, item_id, limit=limit)
    return ok([MovementOut.model_validate(m).model_dump() for m in rows])
