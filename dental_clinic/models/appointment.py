# dental_clinic/models/appointment.py
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Date,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from dental_clinic.db.base import Base, MYSQL_ARGS

APPT_PENDING = "pending"
APPT_APPROVED = "approved"
APPT_REJECTED = "rejected"
APPT_CANCELLED = "cancelled"
APPT_COMPLETED = "completed"
APPT_NO_SHOW = "no_show"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appt_patient_service_date", "patient_id", "service_id", "date"),
        MYSQL_ARGS,
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)
    time_slot = Column(String(20), nullable=True)  # "09:00-09:30"

    status = Column(String(20), nullable=False, default=APPT_PENDING)
    payment_method = Column(String(10), nullable=False, default="cash")  # cash / maya / hmo
    payment_status = Column(String(20), nullable=False, default="unpaid")  # unpaid / awaiting_payment / paid

    reference_code = Column(String(8), nullable=True, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    patient = relationship("Patient", foreign_keys=[patient_id])
    service = relationship("Service", foreign_keys=[service_id])
