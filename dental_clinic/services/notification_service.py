# FILE: dental_clinic/services/notification_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, and_
from sqlalchemy.orm import Session

from dental_clinic.core.config import settings
from dental_clinic.models.inventory import InventoryItem
from dental_clinic.models.notification import Notification

logger = logging.getLogger(__name__)

TYPE_LOW_STOCK = "low_stock"


def dedupe_key(notif_type: str, subject: str, subject_id) -> str:
    """Idempotency key: "<type>:<subject>:<id>", e.g. low_stock:item:5."""
    return f"{notif_type}:{subject}:{subject_id}"


def can_fire(
    db: Session,
    key: str,
    *,
    window_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    True when no notification with the same key was created inside the
    debounce window.
    """
    hours = settings.LOW_STOCK_DEBOUNCE_HOURS if window_hours is None else window_hours
    since = (now or datetime.utcnow()) - timedelta(hours=hours)

    hit = db.execute(
        select(Notification.id)
        .where(and_(
            Notification.dedupe_key == key,
            Notification.created_at >= since,
        ))
        .limit(1)
    ).scalar_one_or_none()
    return hit is None


def notify_low_stock(
    db: Session,
    item: InventoryItem,
    on_hand: Decimal,
    *,
    now: Optional[datetime] = None,
) -> Optional[Notification]:
    """
    Broadcast a low-stock warning to admin + staff.
    Returns None when the same alert already fired within the window.
    """
    key = dedupe_key(TYPE_LOW_STOCK, "item", item.id)
    if not can_fire(db, key, now=now):
        logger.info("Low-stock alert for item %s debounced", item.id)
        return None

    qty = Decimal(str(on_hand or 0)).normalize()
    notif = Notification(
        type=TYPE_LOW_STOCK,
        title=f"Low stock: {item.name}",
        body=f"On-hand is {qty:f} {item.unit} (threshold: {item.low_stock_threshold}).",
        severity="warning",
        scope="broadcast",
        audience_roles=["admin", "staff"],
        data={
            "item_id": item.id,
            "item_name": item.name,
            "unit": item.unit,
            "threshold": int(item.low_stock_threshold or 0),
            "on_hand": float(qty),
        },
        dedupe_key=key,
        created_by=None,  # system
    )
    if now is not None:
        notif.created_at = now
    db.add(notif)
    db.flush()
    return notif


def list_notifications(
    db: Session,
    *,
    notif_type: Optional[str] = None,
    limit: int = 50,
) -> List[Notification]:
    q = select(Notification)
    if notif_type:
        q = q.where(Notification.type == notif_type)
    q = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    return list(db.execute(q).scalars().all())
