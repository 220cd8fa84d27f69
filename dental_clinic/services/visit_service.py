from __future__ import annotations

import logging
import re
import secrets
import string
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from dental_clinic.core.security import verify_password
from dental_clinic.models.appointment import Appointment, APPT_APPROVED, APPT_COMPLETED
from dental_clinic.models.inventory import InventoryItem
from dental_clinic.models.patient import Patient, Service
from dental_clinic.models.user import User
from dental_clinic.models.visit import (
    PatientVisit,
    VISIT_PENDING,
    VISIT_COMPLETED,
    VISIT_REJECTED,
)
from dental_clinic.schemas.visit import VisitCompleteIn, VisitNotes
from dental_clinic.services.audit_logger import log_system_event
from dental_clinic.services.errors import AuthError, InvalidState, NotFound, ValidationError
from dental_clinic.services.inventory_service import allocate_item, alert_low_stock
from dental_clinic.services.payment_reconciler import (
    appointment_payment_status,
    apply_payment_plan,
    plan_payments,
)
from dental_clinic.utils.timezone import now_clinic

logger = logging.getLogger(__name__)

SYNCED_APPOINTMENT_STATUSES = (APPT_APPROVED, APPT_COMPLETED)

PATIENT_EDIT_MESSAGE = "Only pending visits can be edited."

REJECTION_NOTES = {
    "human_error": "Rejected: Human error",
    "left": "Rejected: Patient left",
}


# -------------------------
# Helpers
# -------------------------

def _load_visit(db: Session, visit_id: int, *, lock: bool = False) -> PatientVisit:
    visit = db.get(
        PatientVisit,
        visit_id,
        options=[
            selectinload(PatientVisit.payments),
            selectinload(PatientVisit.service),
            selectinload(PatientVisit.patient),
        ],
        with_for_update=lock,
    )
    if not visit:
        raise NotFound(f"Visit not found: {visit_id}")
    return visit


def _require_pending(visit: PatientVisit, message: str = "Only pending visits can be processed.") -> None:
    if not visit.is_pending:
        raise InvalidState(message)


def _placeholder_last_name() -> str:
    alphabet = string.ascii_uppercase
    return "".join(secrets.choice(alphabet) for _ in range(6))


def normalize_reference_code(raw: Optional[str]) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", raw or "").upper()


def build_rejection_note(reason: Optional[str], offered_appointment: bool = False) -> str:
    if reason == "line_too_long":
        return "Rejected: Line too long. Offered appointment: " + ("Yes" if offered_appointment else "No")
    return REJECTION_NOTES.get(reason or "", "Rejected: Unknown reason")


# -------------------------
# Queries
# -------------------------

def list_visits(db: Session, *, limit: int = 50) -> List[PatientVisit]:
    return list(db.execute(
        select(PatientVisit)
        .options(
            selectinload(PatientVisit.patient),
            selectinload(PatientVisit.service),
            selectinload(PatientVisit.payments),
        )
        .order_by(PatientVisit.start_time.desc(), PatientVisit.id.desc())
        .limit(limit)
    ).scalars().all())


def get_visit(db: Session, visit_id: int) -> PatientVisit:
    return _load_visit(db, visit_id)


# -------------------------
# Lifecycle
# -------------------------

def start_visit(db: Session, *, visit_type: str, reference_code: Optional[str] = None) -> PatientVisit:
    """
    walkin      -> placeholder patient + pending visit
    appointment -> pending visit for the approved appointment holding the code;
                   the code is cleared so it cannot be reused
    """
    now = now_clinic()
    try:
        if visit_type == "walkin":
            patient = Patient(first_name="Patient", last_name=_placeholder_last_name())
            db.add(patient)
            db.flush()
            visit = PatientVisit(
                patient_id=patient.id,
                service_id=None,
                visit_date=now.date(),
                start_time=now,
                status=VISIT_PENDING,
            )
        elif visit_type == "appointment":
            code = normalize_reference_code(reference_code)
            if len(code) != 8:
                raise ValidationError("reference_code must be 8 characters.")

            appt = db.execute(
                select(Appointment)
                .where(
                    func.upper(Appointment.reference_code) == code,
                    Appointment.status == APPT_APPROVED,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if not appt:
                raise ValidationError("Invalid or unavailable reference code.")

            visit = PatientVisit(
                patient_id=appt.patient_id,
                service_id=appt.service_id,
                visit_date=now.date(),
                start_time=now,
                status=VISIT_PENDING,
            )
            appt.reference_code = None
        else:
            raise ValidationError("Invalid visit type.")

        db.add(visit)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(visit)
    return visit


def finish_visit(db: Session, visit_id: int) -> PatientVisit:
    try:
        visit = _load_visit(db, visit_id, lock=True)
        _require_pending(visit)
        visit.end_time = now_clinic()
        visit.status = VISIT_COMPLETED
        db.commit()
    except Exception:
        db.rollback()
        raise
    return visit


def reject_visit(
    db: Session,
    visit_id: int,
    *,
    reason: Optional[str] = None,
    offered_appointment: bool = False,
) -> PatientVisit:
    try:
        visit = _load_visit(db, visit_id, lock=True)
        _require_pending(visit)
        visit.end_time = now_clinic()
        visit.status = VISIT_REJECTED
        visit.rejection_note = build_rejection_note(reason, offered_appointment)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return visit


def update_visit_patient(
    db: Session,
    visit_id: int,
    *,
    first_name: str,
    last_name: str,
    contact_number: Optional[str] = None,
    service_id: Optional[int] = None,
) -> PatientVisit:
    """
    Fill in the real patient details and the service for a pending visit
    (typically a walk-in started with a placeholder patient).
    """
    try:
        visit = _load_visit(db, visit_id, lock=True)
        _require_pending(visit, PATIENT_EDIT_MESSAGE)

        if service_id is not None and db.get(Service, service_id) is None:
            raise ValidationError(f"Service not found: {service_id}")

        patient = visit.patient
        patient.first_name = first_name.strip()
        patient.last_name = last_name.strip()
        patient.contact_number = (contact_number or "").strip() or None
        visit.service_id = service_id
        db.commit()
    except Exception:
        db.rollback()
        raise

    return _load_visit(db, visit_id)


def _is_disposable_placeholder(db: Session, patient: Patient) -> bool:
    # no account and nothing else points at it
    if patient.user_id is not None:
        return False
    other_visit = db.execute(
        select(PatientVisit.id).where(PatientVisit.patient_id == patient.id).limit(1)
    ).scalar_one_or_none()
    if other_visit is not None:
        return False
    appt = db.execute(
        select(Appointment.id).where(Appointment.patient_id == patient.id).limit(1)
    ).scalar_one_or_none()
    return appt is None


def link_visit_to_patient(
    db: Session,
    visit_id: int,
    *,
    target_patient_id: int,
    user_id: Optional[int],
) -> PatientVisit:
    """
    Repoint a pending visit to an existing patient profile and drop the
    placeholder patient it was started with.
    """
    try:
        visit = _load_visit(db, visit_id, lock=True)
        _require_pending(visit, PATIENT_EDIT_MESSAGE)

        target = db.get(Patient, target_patient_id)
        if not target:
            raise NotFound(f"Patient not found: {target_patient_id}")

        old = visit.patient
        if old.id == target.id:
            raise ValidationError("Visit is already linked to this patient.")

        visit.patient = target
        db.flush()

        old_id = old.id
        removed = _is_disposable_placeholder(db, old)
        if removed:
            db.delete(old)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Visit %s linked from patient %s to %s by user=%s (placeholder removed=%s)",
        visit_id, old_id, target_patient_id, user_id, removed,
    )
    log_system_event(
        db,
        user_id=user_id,
        category="visit",
        action="linked_patient",
        subject_id=visit_id,
        message=f"Linked visit from patient #{old_id} to #{target_patient_id}",
        context={"from_patient_id": old_id, "to_patient_id": target_patient_id, "placeholder_removed": removed},
    )
    return _load_visit(db, visit_id)


# -------------------------
# Appointment projection
# -------------------------

def sync_appointment_payment_status(db: Session, visit: PatientVisit, payment_status: str) -> int:
    """
    Best-effort projection of the visit's payment outcome onto every
    approved/completed appointment with the same patient, service and date.
    No locking: a concurrent direct edit of the appointment may win.
    """
    appointments = db.execute(
        select(Appointment).where(
            Appointment.patient_id == visit.patient_id,
            Appointment.service_id == visit.service_id,
            Appointment.date == visit.visit_date,
            Appointment.status.in_(SYNCED_APPOINTMENT_STATUSES),
        )
    ).scalars().all()

    logger.info(
        "Updating appointment payment status visit=%s patient=%s service=%s date=%s status=%s matches=%d",
        visit.id, visit.patient_id, visit.service_id, visit.visit_date, payment_status, len(appointments),
    )

    for appt in appointments:
        old = appt.payment_status
        appt.payment_status = payment_status
        logger.info("Appointment %s payment status %s -> %s", appt.id, old, payment_status)

    return len(appointments)


# -------------------------
# Complete with details
# -------------------------

def complete_visit_with_details(
    db: Session,
    visit_id: int,
    payload: VisitCompleteIn,
    *,
    user_id: int,
) -> PatientVisit:
    """
    One transaction: consume stock (FEFO), store notes, reconcile payments,
    project the payment outcome onto matching appointments.
    Any failure rolls everything back and the visit stays pending.
    """
    try:
        visit = _load_visit(db, visit_id, lock=True)
        _require_pending(visit, "Only pending visits can be completed.")

        # 1) stock
        consumed: Dict[int, InventoryItem] = {}
        for line in payload.stock_items:
            item, _allocations = allocate_item(
                db,
                item_id=line.item_id,
                quantity=line.quantity,
                user_id=user_id,
                ref_type="visit",
                ref_id=visit.id,
                notes=line.notes,
            )
            consumed[item.id] = item
        db.flush()

        # 2) low stock (best-effort)
        alert_low_stock(db, consumed.values())

        # 3) notes + status
        now = now_clinic()
        notes = VisitNotes(
            dentist_notes=payload.dentist_notes,
            findings=payload.findings,
            treatment_plan=payload.treatment_plan,
            completed_by=user_id,
            completed_at=now,
        )
        visit.notes = notes.model_dump(mode="json")
        visit.end_time = now
        visit.status = VISIT_COMPLETED

        # 4) payments
        price = visit.service.price if visit.service else Decimal("0")
        plan = plan_payments(
            outcome=payload.payment_status,
            price=price,
            payments=list(visit.payments),
            onsite_amount=payload.onsite_payment_amount,
            method_change=payload.payment_method_change,
        )
        apply_payment_plan(db, plan, visit_id=visit.id, user_id=user_id, now=now)

        # 5) appointments
        sync_appointment_payment_status(db, visit, appointment_payment_status(payload.payment_status))

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.expire_all()
    return _load_visit(db, visit_id)


# -------------------------
# Notes access
# -------------------------

def view_visit_notes(db: Session, visit_id: int, *, user: User, password: str) -> dict:
    visit = _load_visit(db, visit_id)
    if visit.status != VISIT_COMPLETED or not visit.notes:
        raise NotFound("No notes available for this visit.")

    patient_name = visit.patient.full_name if visit.patient else "Unknown"
    user_id = user.id

    if not verify_password(password, user.password_hash):
        log_system_event(
            db,
            user_id=user_id,
            category="visit_notes",
            action="access_denied",
            subject_id=visit.id,
            message="Failed to access visit notes - invalid password",
            context={
                "visit_id": visit.id,
                "patient_name": patient_name,
                "attempted_at": now_clinic().isoformat(),
            },
        )
        raise AuthError("Invalid password.")

    notes = VisitNotes.model_validate(visit.notes)
    log_system_event(
        db,
        user_id=user_id,
        category="visit_notes",
        action="viewed",
        subject_id=visit.id,
        message="Successfully accessed visit notes",
        context={
            "visit_id": visit.id,
            "patient_name": patient_name,
            "accessed_at": now_clinic().isoformat(),
            "notes_contained": {
                "dentist_notes": bool(notes.dentist_notes),
                "findings": bool(notes.findings),
                "treatment_plan": bool(notes.treatment_plan),
            },
        },
    )
    return notes.model_dump(mode="json")
