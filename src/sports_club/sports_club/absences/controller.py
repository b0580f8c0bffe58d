from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.auth import admin_required, current_role, current_user_id, member_required
from ..common.datetime_utils import parse_iso_date
from ..common.responses import domain_error, request_data, server_error
from ..core.enums import AbsenceStatus
from ..core.exceptions import DomainError, ValidationError
from ..container import Container
from . import lifecycle

logger = logging.getLogger(__name__)


def _int_field(data: dict, key: str, label: str) -> int:
    try:
        return int(data.get(key))
    except (TypeError, ValueError):
        raise ValidationError(f"{label} is required")


def register(app: Flask, container: Container) -> None:
    svc = container.absence_service

    def _today():
        return container.clock().date()

    # -------- Member --------
    @app.route("/api/member/absences", methods=["GET"], endpoint="api_my_absences")
    @member_required
    def api_my_absences():
        try:
            return jsonify({"absences": svc.list_absences(member_id=current_user_id())})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Listing absences failed")
            return server_error("System error while loading absences")

    @app.route("/api/member/absences", methods=["POST"], endpoint="api_report_absence")
    @member_required
    def api_report_absence():
        data = request_data()
        try:
            absence = svc.report_absence(
                member_id=current_user_id(),
                class_id=_int_field(data, "program_class_id", "Class"),
                absent_date=parse_iso_date(data.get("absent_date"), "Absent date"),
                reason=data.get("reason"),
            )
            return (
                jsonify(
                    {
                        "success": True,
                        "message": "Absence reported successfully. Awaiting admin approval.",
                        "absence": lifecycle.to_dict(absence, today=_today()),
                    }
                ),
                201,
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Reporting absence failed")
            return server_error("System error while reporting the absence")

    @app.route("/api/member/absences/<int:absence_id>/makeup-slots", methods=["GET"], endpoint="api_makeup_slots")
    @member_required
    def api_makeup_slots(absence_id: int):
        try:
            options = svc.list_makeup_slots(member_id=current_user_id(), absence_id=absence_id)
            return jsonify(options.to_dict())
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Listing makeup slots for absence %s failed", absence_id)
            return server_error("System error while loading makeup classes")

    @app.route("/api/member/absences/<int:absence_id>/select-makeup", methods=["POST"], endpoint="api_select_makeup")
    @member_required
    def api_select_makeup(absence_id: int):
        data = request_data()
        try:
            absence = svc.select_makeup(
                member_id=current_user_id(),
                absence_id=absence_id,
                makeup_class_id=_int_field(data, "makeup_class_id", "Makeup class"),
                makeup_date=parse_iso_date(data.get("makeup_date"), "Makeup date"),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Makeup class booked successfully!",
                    "absence": lifecycle.to_dict(absence, today=_today()),
                }
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Selecting makeup for absence %s failed", absence_id)
            return server_error("System error while booking the makeup class")

    # -------- Admin --------
    @app.route("/api/admin/absences", methods=["GET"], endpoint="api_admin_absences")
    @admin_required
    def api_admin_absences():
        try:
            status_s = request.args.get("status") or None
            try:
                status = AbsenceStatus(status_s) if status_s else None
            except ValueError:
                raise ValidationError("Unknown status")
            program_s = request.args.get("program_id") or ""
            rows = svc.list_admin_absences(
                current_role=current_role(),
                status=status,
                program_id=int(program_s) if program_s.isdigit() else None,
            )
            return jsonify({"absences": rows, "filters": {"status": status_s, "program_id": program_s or None}})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Listing absences for admin failed")
            return server_error("System error while loading absences")

    @app.route("/api/admin/absences/<int:absence_id>/approve", methods=["POST"], endpoint="api_approve_absence")
    @admin_required
    def api_approve_absence(absence_id: int):
        try:
            absence = svc.approve(
                current_role=current_role(),
                admin_user_id=current_user_id(),
                absence_id=absence_id,
                admin_notes=request_data().get("admin_notes", ""),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Absence approved. Member can select a makeup class until the deadline.",
                    "absence": lifecycle.to_dict(absence, today=_today()),
                }
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Approving absence %s failed", absence_id)
            return server_error("System error while approving the absence")

    @app.route("/api/admin/absences/<int:absence_id>/reject", methods=["POST"], endpoint="api_reject_absence")
    @admin_required
    def api_reject_absence(absence_id: int):
        try:
            absence = svc.reject(
                current_role=current_role(),
                admin_user_id=current_user_id(),
                absence_id=absence_id,
                admin_notes=request_data().get("admin_notes", ""),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Absence request rejected.",
                    "absence": lifecycle.to_dict(absence, today=_today()),
                }
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Rejecting absence %s failed", absence_id)
            return server_error("System error while rejecting the absence")

    @app.route("/api/admin/absences/<int:absence_id>/complete", methods=["POST"], endpoint="api_complete_absence")
    @admin_required
    def api_complete_absence(absence_id: int):
        try:
            absence = svc.complete_makeup(absence_id=absence_id)
            return jsonify({"success": True, "absence": lifecycle.to_dict(absence, today=_today())})
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Completing absence %s failed", absence_id)
            return server_error("System error while completing the makeup")
