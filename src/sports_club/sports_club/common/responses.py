from __future__ import annotations

from flask import jsonify, request

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    CapacityExceededError,
    DeadlineExpiredError,
    DomainError,
    InvalidStateError,
    MonthlyCapExceededError,
    NotFoundError,
    ValidationError,
)

# (error kind, HTTP status) per domain exception, most specific first.
_ERROR_MAP = (
    (NotFoundError, "not_found", 404),
    (AuthenticationError, "not_authenticated", 401),
    (AuthorizationError, "not_authorized", 403),
    (InvalidStateError, "invalid_state", 409),
    (DeadlineExpiredError, "deadline_expired", 422),
    (CapacityExceededError, "capacity_exceeded", 409),
    (MonthlyCapExceededError, "monthly_cap_exceeded", 422),
    (ValidationError, "validation_error", 422),
)


def error_kind(e: DomainError) -> tuple[str, int]:
    for exc_type, kind, status in _ERROR_MAP:
        if isinstance(e, exc_type):
            return kind, status
    return "domain_error", 400


def domain_error(e: DomainError):
    kind, status = error_kind(e)
    return jsonify({"success": False, "error": kind, "message": str(e)}), status


def server_error(message: str):
    return jsonify({"success": False, "error": "server_error", "message": message}), 500


def request_data() -> dict:
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()
