from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.auth import admin_required, current_role, current_user_id, login_required, member_required
from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..common.responses import domain_error, request_data, server_error
from ..core.constants import DEFAULT_UPCOMING_DAYS
from ..core.exceptions import DomainError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def _days_arg() -> int:
    raw = request.args.get("days", str(DEFAULT_UPCOMING_DAYS))
    if not raw.isdigit():
        raise ValidationError("Days must be a number")
    return int(raw)


def _optional_int(value):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{value!r} is not a number")


def register(app: Flask, container: Container) -> None:
    @app.route("/api/member/classes", methods=["GET"], endpoint="api_my_classes")
    @member_required
    def api_my_classes():
        try:
            classes = container.class_service.list_my_classes(member_id=current_user_id(), days=_days_arg())
            return jsonify({"classes": classes})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Listing member classes failed")
            return server_error("System error while loading classes")

    @app.route("/api/classes/<int:class_id>/occurrences", methods=["GET"], endpoint="api_class_occurrences")
    @login_required
    def api_class_occurrences(class_id: int):
        try:
            occurrences = container.class_service.list_upcoming_occurrences(class_id, _days_arg())
            return jsonify({"class_id": class_id, "occurrences": [o.to_dict() for o in occurrences]})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Listing occurrences for class %s failed", class_id)
            return server_error("System error while loading the calendar")

    @app.route("/api/admin/classes", methods=["POST"], endpoint="api_admin_create_class")
    @admin_required
    def api_admin_create_class():
        data = request_data()
        try:
            class_id = container.class_service.create_slot(
                current_role=current_role(),
                program_id=_optional_int(data.get("program_id")) or 0,
                day_of_week=data.get("day_of_week", ""),
                start_time=parse_clock_time(data.get("start_time"), "Start time"),
                end_time=parse_clock_time(data.get("end_time"), "End time"),
                capacity=_optional_int(data.get("capacity")),
                label=data.get("label", ""),
                coach_id=_optional_int(data.get("coach_id")),
                valid_from=parse_iso_date(data["valid_from"], "Valid from") if data.get("valid_from") else None,
                valid_to=parse_iso_date(data["valid_to"], "Valid to") if data.get("valid_to") else None,
            )
            return jsonify({"success": True, "class_id": class_id}), 201
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Creating class failed")
            return server_error("System error while creating the class")

    def _set_active(class_id: int, is_active: bool):
        try:
            container.class_service.set_active(current_role=current_role(), class_id=class_id, is_active=is_active)
            return jsonify({"success": True, "class_id": class_id, "is_active": is_active})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Updating class %s failed", class_id)
            return server_error("System error while updating the class")

    @app.route("/api/admin/classes/<int:class_id>/deactivate", methods=["POST"], endpoint="api_admin_deactivate_class")
    @admin_required
    def api_admin_deactivate_class(class_id: int):
        return _set_active(class_id, False)

    @app.route("/api/admin/classes/<int:class_id>/activate", methods=["POST"], endpoint="api_admin_activate_class")
    @admin_required
    def api_admin_activate_class(class_id: int):
        return _set_active(class_id, True)

    @app.route("/api/admin/classes/<int:class_id>/cancellations", methods=["POST"], endpoint="api_admin_cancel_class")
    @admin_required
    def api_admin_cancel_class(class_id: int):
        data = request_data()
        try:
            cancellation_id = container.class_service.cancel_date(
                current_role=current_role(),
                class_id=class_id,
                cancelled_date=parse_iso_date(data.get("cancelled_date"), "Cancelled date"),
                reason=data.get("reason"),
            )
            return jsonify({"success": True, "cancellation_id": cancellation_id}), 201
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Cancelling class %s failed", class_id)
            return server_error("System error while cancelling the class")

    @app.route("/api/admin/class-assignments/assign", methods=["POST"], endpoint="api_admin_assign")
    @admin_required
    def api_admin_assign():
        data = request_data()
        try:
            assignment_id = container.class_service.assign_member(
                current_role=current_role(),
                admin_user_id=current_user_id(),
                member_id=_optional_int(data.get("member_id")) or 0,
                class_id=_optional_int(data.get("program_class_id")) or 0,
                notes=data.get("notes"),
            )
            return jsonify({"success": True, "assignment_id": assignment_id}), 201
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Assigning member failed")
            return server_error("System error while assigning the member")

    @app.route("/api/admin/class-assignments/unassign", methods=["POST"], endpoint="api_admin_unassign")
    @admin_required
    def api_admin_unassign():
        data = request_data()
        try:
            container.class_service.unassign_member(
                current_role=current_role(),
                member_id=_optional_int(data.get("member_id")) or 0,
                class_id=_optional_int(data.get("program_class_id")) or 0,
            )
            return jsonify({"success": True})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Removing member from class failed")
            return server_error("System error while removing the member")
