from __future__ import annotations

from functools import wraps

from flask import jsonify, session

from ..core.enums import Role


def current_role() -> Role:
    return Role(session.get("role"))


def current_user_id() -> int:
    return int(session["user_id"])


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "error": "not_authenticated", "message": "Please log in"}), 401
        return view(*args, **kwargs)

    return wrapper


def _role_required(role: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "error": "not_authenticated", "message": "Please log in"}), 401
            if session.get("role") != role.value:
                return jsonify({"success": False, "error": "not_authorized", "message": "Not authorized"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


admin_required = _role_required(Role.ADMIN)
member_required = _role_required(Role.MEMBER)
