# dental_clinic/models/visit.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    Index,
)
from sqlalchemy.orm import relationship

from dental_clinic.db.base import Base, MYSQL_ARGS

VISIT_PENDING = "pending"
VISIT_COMPLETED = "completed"
VISIT_REJECTED = "rejected"


class PatientVisit(Base):
    __tablename__ = "patient_visits"
    __table_args__ = (
        Index("ix_visit_patient_date", "patient_id", "visit_date"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=True, index=True)

    visit_date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=True)  # set when the visit starts
    end_time = Column(DateTime, nullable=True)  # set on completion or rejection

    status = Column(String(20), nullable=False, default=VISIT_PENDING)  # pending / completed / rejected

    # VisitNotes payload (see schemas.visit.VisitNotes)
    notes = Column(JSON, nullable=True)
    rejection_note = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient", foreign_keys=[patient_id])
    service = relationship("Service", foreign_keys=[service_id])
    payments = relationship(
        "Payment",
        back_populates="visit",
        order_by="Payment.id",
    )

    @property
    def is_pending(self) -> bool:
        return self.status == VISIT_PENDING
