"""Tests for the domain error hierarchy and its HTTP mapping."""
import json

import pytest

from shuttle.core.errors import (
    MSG_INTERNAL_ERROR,
    MSG_STORE_UNAVAILABLE,
    SLOT_FULL,
    AdmissionDenied,
    HoldNotActive,
    InvalidTransition,
    NotFoundError,
    ShuttleError,
    TransientStoreError,
    shuttle_error_response,
    shuttle_error_to_http,
)


class TestErrorMapping:
    def test_admission_denied_is_conflict(self):
        status, body = shuttle_error_to_http(AdmissionDenied(SLOT_FULL, "Slot is full"))
        assert status == 409
        assert body == {"ok": False, "code": "slot_full", "message": "Slot is full"}

    def test_invalid_transition_names_states(self):
        status, body = shuttle_error_to_http(InvalidTransition("completed", "scheduled"))
        assert status == 409
        assert body["code"] == "invalid_transition"
        assert (body["current"], body["requested"]) == ("completed", "scheduled")

    def test_hold_not_active(self):
        exc = HoldNotActive("hold_1", "expired", "confirmed")
        status, body = shuttle_error_to_http(exc)
        assert status == 409
        assert body["current"] == "expired"
        assert exc.hold_id == "hold_1"

    def test_not_found(self):
        assert shuttle_error_to_http(NotFoundError("Ride 3 not found"))[0] == 404

    def test_transient_hides_detail(self):
        status, body = shuttle_error_to_http(TransientStoreError("database is locked"))
        assert status == 503
        assert body["message"] == MSG_STORE_UNAVAILABLE
        assert "locked" not in json.dumps(body)

    def test_unknown_subclass_is_generic_500(self):
        status, body = shuttle_error_to_http(ShuttleError("boom"))
        assert status == 500
        assert body["message"] == MSG_INTERNAL_ERROR

    def test_response(self):
        response = shuttle_error_response(NotFoundError("Hold x not found"))
        assert response.status_code == 404
        assert json.loads(response.body)["code"] == "not_found"

    def test_admission_denied_defaults_message_to_code(self):
        exc = AdmissionDenied("premium_full")
        assert exc.message == "premium_full"
        with pytest.raises(ShuttleError):
            raise exc
