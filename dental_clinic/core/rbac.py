from __future__ import annotations

from typing import Any, Iterable, Optional

from dental_clinic.services.errors import PermissionDenied

ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"
ROLE_PATIENT = "patient"

STAFF_ROLES = (ROLE_ADMIN, ROLE_STAFF)


def _role(user: Any) -> str:
    """
    Normalize the user's role code safely (str / Enum / missing).
    """
    if not user:
        return ""
    v = getattr(user, "role", None)
    if v is None:
        return ""
    v = getattr(v, "value", v)
    return str(v).strip().lower()


def is_admin_user(user: Any) -> bool:
    return _role(user) == ROLE_ADMIN


def has_role(user: Any, *roles: str) -> bool:
    if not user or not bool(getattr(user, "is_active", True)):
        return False
    return _role(user) in {r.strip().lower() for r in roles}


def require_any(user: Any, roles: Iterable[str], *, message: Optional[str] = None) -> None:
    """
    Raise PermissionDenied (403) if user doesn't hold at least one of the given roles.
    Admins pass every check.
    """
    if is_admin_user(user):
        return

    if has_role(user, *roles):
        return

    raise PermissionDenied(message or "You do not have permission to perform this action.")


def require_staff(user: Any) -> None:
    require_any(user, STAFF_ROLES, message="Staff access required.")
