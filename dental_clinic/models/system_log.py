from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    JSON,
)

from dental_clinic.db.base import Base, MYSQL_ARGS


class SystemLog(Base):
    """
    Audit trail for sensitive reads/writes (e.g. access to visit notes).
    """
    __tablename__ = "system_logs"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, nullable=True)  # system jobs may be null
    category = Column(String(50), nullable=False)  # visit_notes / inventory / ...
    action = Column(String(50), nullable=False)  # viewed / access_denied / ...

    subject_id = Column(Integer, nullable=True)
    message = Column(String(255), nullable=True)
    context = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
