from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

PaymentOutcome = Literal["paid", "hmo_fully_covered", "partial", "unpaid"]


class StockLineIn(BaseModel):
    item_id: int
    quantity: Decimal = Field(..., ge=Decimal("0.001"), decimal_places=3)
    notes: Optional[str] = None


class VisitCompleteIn(BaseModel):
    stock_items: List[StockLineIn] = Field(default_factory=list)
    dentist_notes: Optional[str] = Field(None, max_length=2000)
    findings: Optional[str] = Field(None, max_length=2000)
    treatment_plan: Optional[str] = Field(None, max_length=2000)
    payment_status: PaymentOutcome
    onsite_payment_amount: Optional[Decimal] = Field(None, ge=0)
    payment_method_change: Optional[Literal["maya_to_cash"]] = None

    @model_validator(mode="after")
    def _partial_needs_amount(self):
        if self.payment_status == "partial" and not self.onsite_payment_amount:
            raise ValueError("onsite_payment_amount is required for partial payments")
        return self


class VisitNotes(BaseModel):
    """Clinical notes stored on a completed visit."""
    dentist_notes: Optional[str] = None
    findings: Optional[str] = None
    treatment_plan: Optional[str] = None
    completed_by: int
    completed_at: datetime


class VisitStartIn(BaseModel):
    visit_type: Literal["walkin", "appointment"]
    reference_code: Optional[str] = None


class VisitRejectIn(BaseModel):
    reason: Optional[str] = None  # human_error / left / line_too_long
    offered_appointment: bool = False


class ViewNotesIn(BaseModel):
    password: str = Field(..., min_length=1)


class PaymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    amount_due: Decimal
    amount_paid: Decimal
    method: str
    status: str
    reference_no: str
    paid_at: Optional[datetime] = None
    created_by: Optional[int] = None


class PatientMiniOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str


class ServiceMiniOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    price: Decimal


class VisitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    service_id: Optional[int] = None
    visit_date: date
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    status: str
    rejection_note: Optional[str] = None
    patient: Optional[PatientMiniOut] = None
    service: Optional[ServiceMiniOut] = None
    payments: List[PaymentOut] = Field(default_factory=list)


class VisitPatientUpdateIn(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    contact_number: Optional[str] = Field(None, max_length=20)
    service_id: Optional[int] = None


class VisitLinkPatientIn(BaseModel):
    target_patient_id: int
