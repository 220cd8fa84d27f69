# dental_clinic/api/routes_auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session

from dental_clinic.api.deps import get_db
from dental_clinic.core.security import verify_password
from dental_clinic.models.user import User
from dental_clinic.schemas.auth import LoginIn, TokenOut
from dental_clinic.utils.jwt import create_access_token
from dental_clinic.utils.resp import ok

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.info("Login failed for %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User inactive")

    token = create_access_token(user.email, role=user.role)
    return ok(TokenOut(access_token=token, role=user.role).model_dump())
