from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dental_clinic.api.deps import get_db, staff_user
from dental_clinic.models.user import User
from dental_clinic.schemas.visit import (
    VisitCompleteIn,
    VisitLinkPatientIn,
    VisitOut,
    VisitPatientUpdateIn,
    VisitRejectIn,
    VisitStartIn,
    ViewNotesIn,
)
from dental_clinic.services.visit_service import (
    complete_visit_with_details,
    finish_visit,
    get_visit,
    link_visit_to_patient,
    list_visits,
    reject_visit,
    start_visit,
    update_visit_patient,
    view_visit_notes,
)
from dental_clinic.utils.resp import ok

logger = logging.getLogger(__name__)

router = APIRouter()


def _visit_out(visit) -> dict:
    return VisitOut.model_validate(visit).model_dump()


@router.get("")
def visits_list(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    rows = list_visits(db, limit=limit)
    return ok([_visit_out(v) for v in rows])


@router.post("")
def visits_start(
    payload: VisitStartIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = start_visit(db, visit_type=payload.visit_type, reference_code=payload.reference_code)
    logger.info("Visit %s started type=%s by user=%s", visit.id, payload.visit_type, user.id)
    return ok(_visit_out(get_visit(db, visit.id)), status_code=201)


@router.get("/{visit_id}")
def visits_get(
    visit_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    return ok(_visit_out(get_visit(db, visit_id)))


@router.put("/{visit_id}/patient")
def visits_update_patient(
    visit_id: int,
    payload: VisitPatientUpdateIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = update_visit_patient(
        db,
        visit_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        contact_number=payload.contact_number,
        service_id=payload.service_id,
    )
    return ok(_visit_out(visit))


@router.post("/{visit_id}/link-patient")
def visits_link_patient(
    visit_id: int,
    payload: VisitLinkPatientIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = link_visit_to_patient(db, visit_id, target_patient_id=payload.target_patient_id, user_id=user.id)
    return ok({
        "message": "Visit successfully linked to existing patient profile.",
        "visit": _visit_out(visit),
    })


@router.post("/{visit_id}/finish")
def visits_finish(
    visit_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = finish_visit(db, visit_id)
    return ok(_visit_out(visit))


@router.post("/{visit_id}/reject")
def visits_reject(
    visit_id: int,
    payload: VisitRejectIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = reject_visit(
        db,
        visit_id,
        reason=payload.reason,
        offered_appointment=payload.offered_appointment,
    )
    return ok(_visit_out(visit))


@router.post("/{visit_id}/complete-with-details")
def visits_complete_with_details(
    visit_id: int,
    payload: VisitCompleteIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    visit = complete_visit_with_details(db, visit_id, payload, user_id=user.id)
    return ok({
        "message": "Visit completed successfully.",
        "visit": _visit_out(visit),
    })


@router.post("/{visit_id}/view-notes")
def visits_view_notes(
    visit_id: int,
    payload: ViewNotesIn,
    db: Session = Depends(get_db),
    user: User = Depends(staff_user),
):
    notes = view_visit_notes(db, visit_id, user=user, password=payload.password)
    return ok(notes)
