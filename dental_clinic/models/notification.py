# dental_clinic/models/notification.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    JSON,
    Index,
)

from dental_clinic.db.base import Base, MYSQL_ARGS


class Notification(Base):
    """
    Broadcast / targeted alerts shown in the staff bell.
    dedupe_key is "<type>:<subject>:<id>" and drives the debounce window.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_dedupe_created", "dedupe_key", "created_at"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(50), nullable=False, index=True)  # low_stock / near_expiry / ...
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    severity = Column(String(20), nullable=False, default="info")  # info / warning / danger
    scope = Column(String(20), nullable=False, default="broadcast")  # broadcast / targeted

    audience_roles = Column(JSON, nullable=True)
    data = Column(JSON, nullable=True)

    dedupe_key = Column(String(120), nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)  # null = system
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
