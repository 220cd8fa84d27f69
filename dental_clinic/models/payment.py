# dental_clinic/models/payment.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Numeric,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from dental_clinic.db.base import Base, MYSQL_ARGS

Money = Numeric(12, 2)

# ---- methods ----
METHOD_CASH = "cash"
METHOD_MAYA = "maya"
METHOD_HMO = "hmo"

# ---- statuses ----
STATUS_UNPAID = "unpaid"
STATUS_AWAITING_PAYMENT = "awaiting_payment"
STATUS_PAID = "paid"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"

PENDING_STATUSES = (STATUS_UNPAID, STATUS_AWAITING_PAYMENT)


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        Index("ix_payments_status_created", "status", "created_at"),
        Index("ix_payments_method_status", "method", "status"),
        Index("ix_payments_visit_status", "patient_visit_id", "status"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id"), nullable=True, index=True)
    patient_visit_id = Column(Integer, ForeignKey("patient_visits.id"), nullable=True, index=True)

    currency = Column(String(3), nullable=False, default="PHP")
    amount_due = Column(Money, nullable=False)
    amount_paid = Column(Money, nullable=False, default=Decimal("0"))

    method = Column(String(10), nullable=False, default=METHOD_MAYA)  # maya / cash / hmo
    status = Column(String(20), nullable=False, default=STATUS_UNPAID)

    reference_no = Column(String(64), unique=True, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    visit = relationship("PatientVisit", back_populates="payments")
    creator = relationship("User", foreign_keys=[created_by])

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID
