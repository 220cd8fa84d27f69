"""Tests for login and bearer-token checks."""

from dental_clinic.models import User
from dental_clinic.core.security import hash_password, verify_password
from dental_clinic.utils.jwt import create_access_token

class TestLogin:

    def test_login_returns_token(self, client, staff, staff_password):
        res = client.post("/api/auth/login", json={"email": staff.email, "password": staff_password})

        assert res.status_code == 200, res.text
        data = res.json()["data"]
        assert data["token_type"] == "bearer"
        assert data["role"] == "staff"

        listed = client.get("/api/visits", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert listed.status_code == 200

    def test_wrong_password(self, client, staff):
        res = client.post("/api/auth/login", json={"email": staff.email, "password": "wrong"})

        assert res.status_code == 401
        assert res.json()["status"] is False


class TestTokenChecks:

    def test_garbage_token(self, client):
        res = client.get("/api/visits", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_patient_role_is_forbidden(self, client, db):
        db.add(User(name="Juan", email="juan@dentalclinic.ph", password_hash=hash_password("x"), role="patient"))
        db.commit()
        token = create_access_token("juan@dentalclinic.ph", role="patient")

        res = client.get("/api/visits", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 403


def test_verify_password_handles_bad_hash():
    assert verify_password("x", "not-a-bcrypt-hash") is False
    assert verify_password("", hash_password("x")) is False
