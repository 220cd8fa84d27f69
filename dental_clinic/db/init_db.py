# dental_clinic/db/init_db.py
from __future__ import annotations

import argparse
from typing import Optional

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_clinic.core.security import hash_password
from dental_clinic.db.session import engine
from dental_clinic.db.base import Base

# Import all models so metadata is complete
from dental_clinic import models  # noqa: F401
from dental_clinic.models.user import User


def print_tables() -> None:
    names = sorted(inspect(engine).get_table_names())
    print("Existing tables:", names)


def seed_user(db: Session, *, email: str, password: str, role: str = "admin", name: Optional[str] = None) -> bool:
    """
    Create the bootstrap account if it is missing; safe to run multiple times.
    """
    email = email.strip().lower()
    exists = db.execute(select(User.id).where(User.email == email)).scalar_one_or_none()
    if exists:
        return False
    db.add(User(
        name=name or email.split("@")[0],
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    ))
    return True


def run(fresh: bool = False, admin_email: Optional[str] = None, admin_password: Optional[str] = None) -> None:
    if fresh:
        print("WARNING: Dropping ALL tables (dev only) …")
        Base.metadata.drop_all(bind=engine)

    print("Creating all missing tables …")
    Base.metadata.create_all(bind=engine)
    print_tables()

    if not (admin_email and admin_password):
        return

    try:
        with Session(engine) as db:
            created = seed_user(db, email=admin_email, password=admin_password)
            db.commit()
            print("Admin user created." if created else "Admin user already exists.")
    except SQLAlchemyError as e:
        print("Seeding failed:", e)
        raise


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Initialize DB (create tables, optional admin user).")
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Drop & recreate all tables (DEV ONLY).",
    )
    parser.add_argument("--admin-email", default=None)
    parser.add_argument("--admin-password", default=None)
    args = parser.parse_args()
    run(fresh=args.fresh, admin_email=args.admin_email, admin_password=args.admin_password)
