# dental_clinic/models/patient.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Numeric,
    ForeignKey,
)
from sqlalchemy.orm import relationship

from dental_clinic.db.base import Base, MYSQL_ARGS

Money = Numeric(12, 2)


class Patient(Base):
    __tablename__ = "patients"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    contact_number = Column(String(20), nullable=True)

    # walk-in placeholders have no linked account
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", foreign_keys=[user_id])

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Service(Base):
    __tablename__ = "services"
    __table_args__ = MYSQL_ARGS

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    price = Column(Money, nullable=False, default=Decimal("0"))
    is_active = Column(Boolean, default=True, nullable=False)
