import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from dental_clinic.models.system_log import SystemLog

logger = logging.getLogger(__name__)


def log_system_event(
    db: Session,
    *,
    user_id: Optional[int],
    category: str,  # "visit_notes" | "inventory" | ...
    action: str,  # "viewed" | "access_denied" | ...
    subject_id: Optional[int] = None,
    message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Persist one audit event into system_logs.
    Informational only: a failed write is logged and never raised.
    """
    try:
        log = SystemLog(
            user_id=user_id,
            category=category,
            action=action,
            subject_id=subject_id,
            message=message,
            context=context,
        )
        db.add(log)
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("Failed to log audit event %s/%s", category, action, exc_info=True)
