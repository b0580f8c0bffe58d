from __future__ import annotations

import logging

from flask import Flask, jsonify, session

from ..common.auth import login_required
from ..common.responses import domain_error, request_data, server_error
from ..core.exceptions import DomainError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="api_login")
    def api_login():
        data = request_data()
        try:
            user = container.auth_service.authenticate(data.get("username", ""), data.get("password", ""))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            logger.exception("Login failed")
            return server_error("System error during login")

        session.clear()
        session["user_id"] = user.user_id
        session["role"] = user.role.value
        session["name"] = user.full_name
        return jsonify({"success": True, "user": {"id": user.user_id, "name": user.full_name, "role": user.role.value}})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="api_logout")
    def api_logout():
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/auth/me", methods=["GET"], endpoint="api_me")
    @login_required
    def api_me():
        return jsonify(
            {"success": True, "user": {"id": session["user_id"], "name": session.get("name"), "role": session.get("role")}}
        )
