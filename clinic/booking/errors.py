"""
Booking error taxonomy.

Every error carries the HTTP status and a stable code so the API layer can
translate it without knowing which component raised it.
"""

import logging
from typing import Any, Dict, Optional


class ClinicError(Exception):
    status_code: int = 400
    code: str = "CLINIC_ERROR"
    log_level: int = logging.WARNING

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ClinicError):
    """Malformed input: bad date/time, out-of-range duration or price, unknown type."""
    status_code = 400
    code = "VALIDATION_ERROR"


class PermissionDenied(ClinicError):
    """The actor's role or ownership does not allow the transition."""
    status_code = 403
    code = "PERMISSION_DENIED"


class PolicyViolation(ClinicError):
    """Action attempted outside its time window or from a disallowed state."""
    status_code = 403
    code = "POLICY_VIOLATION"


class NotFound(ClinicError):
    status_code = 404
    code = "NOT_FOUND"
    log_level = logging.INFO


class Conflict(ClinicError):
    """Requested slot is already occupied by an active appointment."""
    status_code = 409
    code = "SLOT_TAKEN"


class DeliveryFailure(ClinicError):
    """A notification could not be delivered."""
    status_code = 502
    code = "DELIVERY_FAILURE"
    log_level = logging.ERROR
