"""Shared pytest fixtures."""

import os

# settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dental_clinic.api.deps import get_db
from dental_clinic.core.security import hash_password
from dental_clinic.db.base import Base
from dental_clinic.main import app
from dental_clinic.models import (
    Appointment,
    InventoryBatch,
    InventoryItem,
    Patient,
    PatientVisit,
    Payment,
    Service,
    User,
)
from dental_clinic.utils.jwt import create_access_token
from dental_clinic.utils.timezone import now_clinic, today_clinic

STAFF_PASSWORD = "s3cret-pass"


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    # pysqlite: let SQLAlchemy emit BEGIN so SAVEPOINT works
    @event.listens_for(eng, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(eng, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """API client sharing the test session."""
    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def staff(db):
    user = User(
        name="Front Desk",
        email="staff@dentalclinic.ph",
        password_hash=hash_password(STAFF_PASSWORD),
        role="staff",
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def auth_headers(staff):
    token = create_access_token(staff.email, role=staff.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_item(db):
    def _make(name="Lidocaine 2%", *, unit="cartridge", threshold=0):
        item = InventoryItem(name=name, unit=unit, low_stock_threshold=threshold)
        db.add(item)
        db.commit()
        return item
    return _make


@pytest.fixture
def make_batch(db):
    def _make(item, qty, *, expiry=None, received_at=None, batch_number=None):
        qty = Decimal(str(qty))
        batch = InventoryBatch(
            item_id=item.id,
            batch_number=batch_number,
            expiry_date=expiry,
            qty_received=qty,
            qty_on_hand=qty,
            received_at=received_at or datetime(2026, 1, 5, 9, 0),
        )
        db.add(batch)
        db.commit()
        return batch
    return _make


@pytest.fixture
def service(db):
    svc = Service(name="Oral Prophylaxis", price=Decimal("2500.00"))
    db.add(svc)
    db.commit()
    return svc


@pytest.fixture
def patient(db):
    p = Patient(first_name="Maria", last_name="Santos", contact_number="09171234567")
    db.add(p)
    db.commit()
    return p


@pytest.fixture
def make_visit(db):
    def _make(patient, service=None, *, status="pending"):
        visit = PatientVisit(
            patient_id=patient.id,
            service_id=service.id if service else None,
            visit_date=today_clinic(),
            start_time=now_clinic(),
            status=status,
        )
        db.add(visit)
        db.commit()
        return visit
    return _make


@pytest.fixture
def make_appointment(db):
    def _make(patient, service, *, status="approved", reference_code=None, payment_method="cash", appt_date=None):
        appt = Appointment(
            patient_id=patient.id,
            service_id=service.id,
            date=appt_date or today_clinic(),
            time_slot="09:00-09:30",
            status=status,
            payment_method=payment_method,
            payment_status="unpaid",
            reference_code=reference_code,
        )
        db.add(appt)
        db.commit()
        return appt
    return _make


@pytest.fixture
def make_payment(db):
    def _make(visit, *, amount_due, amount_paid="0", method="maya", status="unpaid", reference_no="MAYA-TEST-1"):
        p = Payment(
            patient_visit_id=visit.id,
            amount_due=Decimal(str(amount_due)),
            amount_paid=Decimal(str(amount_paid)),
            method=method,
            status=status,
            reference_no=reference_no,
        )
        db.add(p)
        db.commit()
        return p
    return _make


@pytest.fixture
def staff_password():
    return STAFF_PASSWORD
