from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_user_id, error_response, json_body, roles_required, server_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError


def _role_arg():
    raw = request.args.get("role")
    if not raw:
        return None
    try:
        return Role(raw.upper())
    except ValueError:
        raise ValidationError("Invalid role")


def register(app: Flask, container: Container) -> None:
    svc = container.admin_service

    @app.route("/api/admin/stats", endpoint="admin_stats")
    @roles_required(Role.ADMIN)
    def stats():
        try:
            return jsonify({"success": True, "stats": svc.stats()})
        except Exception as e:
            return server_error("Failed to load statistics", e)

    @app.route("/api/admin/users", endpoint="admin_users")
    @roles_required(Role.ADMIN)
    def users():
        try:
            rows = [u.to_public_dict() for u in svc.list_users(_role_arg())]
            return jsonify({"success": True, "users": rows, "total": len(rows)})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to load users", e)

    @app.route("/api/admin/users/<int:user_id>", methods=["PUT", "DELETE"], endpoint="admin_user")
    @roles_required(Role.ADMIN)
    def user(user_id: int):
        try:
            if request.method == "DELETE":
                svc.delete_user(current_user_id(), user_id)
                return jsonify({"success": True, "message": "User deleted successfully"})

            data = json_body()
            updated = svc.update_user(
                current_user_id(),
                user_id,
                role=data.get("role"),
                is_active=data.get("isActive"),
                first_name=data.get("firstName"),
                last_name=data.get("lastName"),
            )
            return jsonify({"success": True, "user": updated.to_public_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to update user", e)

    @app.route("/api/admin/managers", endpoint="admin_managers")
    @roles_required(Role.ADMIN)
    def managers():
        try:
            rows = svc.list_managers()
            return jsonify({"success": True, "managers": rows, "total": len(rows)})
        except Exception as e:
            return server_error("Failed to load managers", e)

    @app.route("/api/admin/settings", methods=["GET", "PUT"], endpoint="admin_settings")
    @roles_required(Role.ADMIN)
    def settings():
        try:
            if request.method == "GET":
                return jsonify({"success": True, "settings": svc.settings()})

            data = json_body()
            section = svc.update_settings(current_user_id(), data.get("section", ""), data.get("settings"))
            return jsonify({"success": True, "message": "Settings updated successfully", "settings": section})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to update settings", e)
