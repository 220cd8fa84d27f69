# dental_clinic/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from dental_clinic.core.rbac import require_staff
from dental_clinic.db.session import SessionLocal
from dental_clinic.models.user import User
from dental_clinic.utils.jwt import decode_token


# =========================================================
# DB (per request)
# =========================================================
def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_user_from_token(raw_token: Optional[str], db: Session) -> User:
    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing token")

    payload = decode_token(raw_token)
    if payload is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user: Optional[User] = db.execute(
        select(User).where(User.email == email)
    ).scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User inactive")
    return user


def current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> User:
    return get_user_from_token(_extract_bearer(authorization), db)


def staff_user(user: User = Depends(current_user)) -> User:
    require_staff(user)
    return user
