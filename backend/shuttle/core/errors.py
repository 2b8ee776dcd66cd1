"""
Domain errors and their HTTP mapping.

Admission denials and state errors are expected outcomes: they carry a machine-readable
code and never leak storage details. Routes stay thin by letting exceptions propagate to
the handlers registered in main.py, which use ERROR_RULES below.
"""
from __future__ import annotations

from fastapi.responses import JSONResponse

# ---------------------------------------------------------------------------
# Reason codes
# ---------------------------------------------------------------------------

SLOT_FULL = "slot_full"
SLOT_NOT_FOUND = "slot_not_found"
PEAK_RESTRICTED = "peak_restricted"
DAILY_CAP_REACHED = "daily_cap_reached"
HOURLY_CAP_REACHED = "hourly_cap_reached"
OVERLAP_CONFLICT = "overlap_conflict"
INSUFFICIENT_CREDIT = "insufficient_credit"
PREMIUM_FULL = "premium_full"

INVALID_TRANSITION = "invalid_transition"
HOLD_NOT_ACTIVE = "hold_not_active"

# HTTP status codes for known error categories
STATUS_CONFLICT = 409
STATUS_NOT_FOUND = 404
STATUS_SERVICE_UNAVAILABLE = 503  # lock timeout, connection loss
STATUS_INTERNAL_ERROR = 500

MSG_INTERNAL_ERROR = "Something went wrong. Please try again."
MSG_STORE_UNAVAILABLE = "The service is busy. Please retry."


class ShuttleError(Exception):
    """Base class for every error raised by the admission and reservation core."""

    code = "internal_error"

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class AdmissionDenied(ShuttleError):
    """
    A ride or hold could not be admitted (capacity, peak access, credits, overlap).

    Expected outcome, not a fault: callers surface `code` to the user.
    """

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code, code=code)


class StateError(ShuttleError):
    """Requested change does not fit the current state (caller bug or lost race)."""

    def __init__(self, code: str, current: str | None, requested: str | None, message: str = ""):
        super().__init__(message or f"Cannot move from {current} to {requested}", code=code)
        self.current = current
        self.requested = requested


class InvalidTransition(StateError):
    def __init__(self, current: str, requested: str):
        super().__init__(
            INVALID_TRANSITION,
            current,
            requested,
            f"Cannot transition from {current} to {requested}.",
        )


class HoldNotActive(StateError):
    def __init__(self, hold_id: str, current: str | None, requested: str):
        super().__init__(HOLD_NOT_ACTIVE, current, requested, f"Hold {hold_id} is {current}")
        self.hold_id = hold_id


class NotFoundError(ShuttleError):
    code = "not_found"


class TransientStoreError(ShuttleError):
    """Lock timeout or lost connection. Retry at the operation boundary, never while holding a lock."""

    code = "store_unavailable"


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code). First match wins.
# Add new rules here instead of scattering checks in routes.
# ---------------------------------------------------------------------------

ERROR_RULES: list[tuple[type[ShuttleError], int]] = [
    (AdmissionDenied, STATUS_CONFLICT),
    (StateError, STATUS_CONFLICT),
    (NotFoundError, STATUS_NOT_FOUND),
    (TransientStoreError, STATUS_SERVICE_UNAVAILABLE),
]


def error_payload(exc: ShuttleError) -> dict:
    body = {"ok": False, "code": exc.code, "message": exc.message}
    if isinstance(exc, StateError):
        body["current"] = exc.current
        body["requested"] = exc.requested
    return body


def shuttle_error_to_http(exc: ShuttleError) -> tuple[int, dict]:
    """
    Map a domain error to (status_code, body). Unknown ShuttleError subclasses become a
    generic 500 so internal detail never reaches the client.
    """
    for exc_type, status_code in ERROR_RULES:
        if isinstance(exc, exc_type):
            if isinstance(exc, TransientStoreError):
                return status_code, {"ok": False, "code": exc.code, "message": MSG_STORE_UNAVAILABLE}
            return status_code, error_payload(exc)
    return STATUS_INTERNAL_ERROR, {"ok": False, "code": "internal_error", "message": MSG_INTERNAL_ERROR}


def shuttle_error_response(exc: ShuttleError) -> JSONResponse:
    status_code, body = shuttle_error_to_http(exc)
    return JSONResponse(status_code=status_code, content=body)
