from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dental_clinic.api.deps import get_db, staff_user
from dental_clinic.models.user import User
from dental_clinic.schemas.notification import NotificationOut
from dental_clinic.services.notification_service import list_notifications
from dental_clinic.utils.resp import ok

router = APIRouter()


@router.get("")
def notifications_list(
    type: Optional[str] = Query(None, max_length=50),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    rows = list_notifications(db, notif_type=type, limit=limit)
    return ok([NotificationOut.model_validate(n).model_dump() for n in rows])
