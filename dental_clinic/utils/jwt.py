# dental_clinic/utils/jwt.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError

from dental_clinic.core.config import settings


def create_access_token(subject: str, *, role: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.utcnow()
    payload = {
        "sub": subject,  # user email
        "role": role,
        "iat": now,
        "exp": now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def decode_token(raw_token: str) -> Optional[dict]:
    """Returns the claims, or None when the token is invalid or expired."""
    try:
        return jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None
