"""Tests for the visit lifecycle: start, patient details, finish, reject and notes."""

from decimal import Decimal

from sqlalchemy import select

from dental_clinic.models import Appointment, Patient, Payment, SystemLog
from dental_clinic.services.visit_service import build_rejection_note, normalize_reference_code


def _logs(db, action):
    return db.execute(
        select(SystemLog).where(SystemLog.category == "visit_notes", SystemLog.action == action)
    ).scalars().all()


class TestStartVisit:

    def test_walkin_creates_placeholder_patient(self, client, auth_headers):
        res = client.post("/api/visits", json={"visit_type": "walkin"}, headers=auth_headers)

        assert res.status_code == 201, res.text
        out = res.json()["data"]
        assert out["status"] == "pending"
        assert out["service_id"] is None
        assert out["patient"]["first_name"] == "Patient"
        assert len(out["patient"]["last_name"]) == 6

    def test_appointment_code_is_consumed(self, client, db, auth_headers, patient, service, make_appointment):
        appt = make_appointment(patient, service, reference_code="AB12CD34")

        res = client.post(
            "/api/visits",
            json={"visit_type": "appointment", "reference_code": "ab12-cd34"},
            headers=auth_headers,
        )

        assert res.status_code == 201, res.text
        out = res.json()["data"]
        assert (out["patient_id"], out["service_id"]) == (patient.id, service.id)
        db.expire_all()
        assert db.get(Appointment, appt.id).reference_code is None

        again = client.post(
            "/api/visits",
            json={"visit_type": "appointment", "reference_code": "AB12CD34"},
            headers=auth_headers,
        )
        assert again.status_code == 422

    def test_code_for_unapproved_appointment(self, client, auth_headers, patient, service, make_appointment):
        make_appointment(patient, service, status="pending", reference_code="ZZ99YY88")

        res = client.post(
            "/api/visits",
            json={"visit_type": "appointment", "reference_code": "ZZ99YY88"},
            headers=auth_headers,
        )
        assert res.status_code == 422
        assert res.json()["error"]["msg"] == "Invalid or unavailable reference code."

    def test_short_code(self, client, auth_headers):
        res = client.post(
            "/api/visits",
            json={"visit_type": "appointment", "reference_code": "ABC"},
            headers=auth_headers,
        )
        assert res.status_code == 422

    def test_list_visits(self, client, auth_headers, patient, service, make_visit):
        make_visit(patient, service)
        make_visit(patient, service, status="completed")

        res = client.get("/api/visits", headers=auth_headers)

        assert res.status_code == 200
        assert len(res.json()["data"]) == 2


class TestFinishAndReject:

    def test_finish(self, client, auth_headers, patient, service, make_visit):
        visit = make_visit(patient, service)

        res = client.post(f"/api/visits/{visit.id}/finish", headers=auth_headers)

        assert res.status_code == 200
        out = res.json()["data"]
        assert out["status"] == "completed"
        assert out["end_time"] is not None

    def test_reject_line_too_long(self, client, auth_headers, patient, make_visit):
        visit = make_visit(patient)

        res = client.post(
            f"/api/visits/{visit.id}/reject",
            json={"reason": "line_too_long", "offered_appointment": True},
            headers=auth_headers,
        )

        assert res.status_code == 200
        out = res.json()["data"]
        assert out["status"] == "rejected"
        assert out["rejection_note"] == "Rejected: Line too long. Offered appointment: Yes"

    def test_cannot_reject_finished_visit(self, client, auth_headers, patient, make_visit):
        visit = make_visit(patient, status="completed")

        res = client.post(f"/api/visits/{visit.id}/reject", json={"reason": "left"}, headers=auth_headers)
        assert res.status_code == 422

    def test_rejection_notes(self):
        assert build_rejection_note("human_error") == "Rejected: Human error"
        assert build_rejection_note("left") == "Rejected: Patient left"
        assert build_rejection_note("line_too_long") == "Rejected: Line too long. Offered appointment: No"
        assert build_rejection_note("weather") == "Rejected: Unknown reason"
        assert build_rejection_note(None) == "Rejected: Unknown reason"

    def test_normalize_reference_code(self):
        assert normalize_reference_code(" ab-12 cd34 ") == "AB12CD34"
        assert normalize_reference_code(None) == ""


class TestViewNotes:

    def _completed_visit(self, client, headers, visit):
        res = client.post(
            f"/api/visits/{visit.id}/complete-with-details",
            json={"dentist_notes": "Root canal #36", "findings": "Deep caries", "payment_status": "unpaid"},
            headers=headers,
        )
        assert res.status_code == 200, res.text

    def test_wrong_password_is_audited(self, client, db, auth_headers, staff, patient, service, make_visit):
        visit = make_visit(patient, service)
        self._completed_visit(client, auth_headers, visit)

        res = client.post(f"/api/visits/{visit.id}/view-notes", json={"password": "nope"}, headers=auth_headers)

        assert res.status_code == 401
        denied = _logs(db, "access_denied")
        assert len(denied) == 1
        assert denied[0].user_id == staff.id
        assert denied[0].subject_id == visit.id
        assert denied[0].context["patient_name"] == "Maria Santos"
        assert _logs(db, "viewed") == []

    def test_correct_password_returns_notes(self, client, db, auth_headers, staff_password, patient, service, make_visit):
        visit = make_visit(patient, service)
        self._completed_visit(client, auth_headers, visit)

        res = client.post(
            f"/api/visits/{visit.id}/view-notes",
            json={"password": staff_password},
            headers=auth_headers,
        )

        assert res.status_code == 200, res.text
        notes = res.json()["data"]
        assert notes["dentist_notes"] == "Root canal #36"
        assert notes["treatment_plan"] is None

        viewed = _logs(db, "viewed")
        assert len(viewed) == 1
        assert viewed[0].context["notes_contained"] == {
            "dentist_notes": True,
            "findings": True,
            "treatment_plan": False,
        }

    def test_pending_visit_has_no_notes(self, client, auth_headers, staff_password, patient, make_visit):
        visit = make_visit(patient)

        res = client.post(
            f"/api/visits/{visit.id}/view-notes",
            json={"password": staff_password},
            headers=auth_headers,
        )
        assert res.status_code == 404


class TestWalkinPatientDetails:

    def _walkin(self, client, headers):
        res = client.post("/api/visits", json={"visit_type": "walkin"}, headers=headers)
        assert res.status_code == 201, res.text
        return res.json()["data"]

    def test_update_sets_patient_and_service(self, client, db, auth_headers, service):
        visit = self._walkin(client, auth_headers)

        res = client.put(
            f"/api/visits/{visit['id']}/patient",
            json={"first_name": "Jose", "last_name": "Rizal", "contact_number": "09181234567", "service_id": service.id},
            headers=auth_headers,
        )

        assert res.status_code == 200, res.text
        out = res.json()["data"]
        assert out["service_id"] == service.id
        assert (out["patient"]["first_name"], out["patient"]["last_name"]) == ("Jose", "Rizal")

    def test_price_applies_after_service_is_set(self, client, db, auth_headers, service):
        visit = self._walkin(client, auth_headers)
        client.put(
            f"/api/visits/{visit['id']}/patient",
            json={"first_name": "Jose", "last_name": "Rizal", "service_id": service.id},
            headers=auth_headers,
        )

        res = client.post(
            f"/api/visits/{visit['id']}/complete-with-details",
            json={"payment_status": "paid"},
            headers=auth_headers,
        )

        assert res.status_code == 200, res.text
        payments = db.execute(
            select(Payment).where(Payment.patient_visit_id == visit["id"])
        ).scalars().all()
        assert [(p.method, p.amount_paid) for p in payments] == [("cash", Decimal("2500.00"))]

    def test_unknown_service(self, client, auth_headers):
        visit = self._walkin(client, auth_headers)

        res = client.put(
            f"/api/visits/{visit['id']}/patient",
            json={"first_name": "Jose", "last_name": "Rizal", "service_id": 9999},
            headers=auth_headers,
        )
        assert res.status_code == 422

    def test_update_requires_pending_visit(self, client, auth_headers, patient, make_visit):
        visit = make_visit(patient, status="completed")

        res = client.put(
            f"/api/visits/{visit.id}/patient",
            json={"first_name": "Jose", "last_name": "Rizal"},
            headers=auth_headers,
        )
        assert res.status_code == 422
        assert res.json()["error"]["code"] == "invalid_state"

    def test_link_replaces_placeholder(self, client, db, auth_headers, staff, patient):
        visit = self._walkin(client, auth_headers)
        placeholder_id = visit["patient_id"]

        res = client.post(
            f"/api/visits/{visit['id']}/link-patient",
            json={"target_patient_id": patient.id},
            headers=auth_headers,
        )

        assert res.status_code == 200, res.text
        assert res.json()["data"]["visit"]["patient_id"] == patient.id
        db.expire_all()
        assert db.get(Patient, placeholder_id) is None
        assert db.get(Patient, patient.id) is not None

        logs = db.execute(
            select(SystemLog).where(SystemLog.action == "linked_patient")
        ).scalars().all()
        assert len(logs) == 1
        assert logs[0].context["from_patient_id"] == placeholder_id

    def test_link_keeps_patient_with_history(self, client, db, auth_headers, patient, service, make_visit):
        other = Patient(first_name="Ana", last_name="Cruz")
        db.add(other)
        db.commit()
        make_visit(other, service, status="completed")
        visit = make_visit(other, service)

        res = client.post(
            f"/api/visits/{visit.id}/link-patient",
            json={"target_patient_id": patient.id},
            headers=auth_headers,
        )

        assert res.status_code == 200, res.text
        db.expire_all()
        assert db.get(Patient, other.id) is not None

    def test_link_unknown_patient(self, client, auth_headers):
        visit = self._walkin(client, auth_headers)

        res = client.post(
            f"/api/visits/{visit['id']}/link-patient",
            json={"target_patient_id": 9999},
            headers=auth_headers,
        )
        assert res.status_code == 404

    def test_link_requires_pending_visit(self, client, auth_headers, patient, make_visit):
        visit = make_visit(patient, status="rejected")
        other = client.post("/api/visits", json={"visit_type": "walkin"}, headers=auth_headers).json()["data"]

        res = client.post(
            f"/api/visits/{visit.id}/link-patient",
            json={"target_patient_id": other["patient_id"]},
            headers=auth_headers,
        )
        assert res.status_code == 422
