# FILE: dental_clinic/services/errors.py
from __future__ import annotations

from typing import Any, Optional


class ClinicError(RuntimeError):
    """Base for errors surfaced to the caller as the request outcome."""

    status_code = 400
    code = "clinic_error"

    def __init__(self, message: str, *, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(ClinicError):
    status_code = 404
    code = "not_found"


class InvalidState(ClinicError):
    status_code = 422
    code = "invalid_state"


class InsufficientStock(ClinicError):
    status_code = 422
    code = "insufficient_stock"

    def __init__(self, item_name: str, requested, available):
        super().__init__(
            f"Insufficient stock for {item_name}. "
            f"Requested {requested} but only {available} available.",
            details={"requested": str(requested), "available": str(available)},
        )
        self.item_name = item_name
        self.requested = requested
        self.available = available


class ValidationError(ClinicError):
    status_code = 422
    code = "validation_error"


class AuthError(ClinicError):
    status_code = 401
    code = "unauthorized"


class PermissionDenied(ClinicError):
    status_code = 403
    code = "forbidden"
