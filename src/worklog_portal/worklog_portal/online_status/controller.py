from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import (
    as_int,
    current_user_id,
    date_arg,
    error_response,
    int_arg,
    json_body,
    json_error,
    login_required,
    roles_required,
    server_error,
)
from ..container import Container
from ..core.constants import HISTORY_DAYS
from ..core.enums import Role
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    svc = container.online_status_service

    @app.route("/api/developer/online-status", endpoint="developer_online_status")
    @login_required
    def developer_online_status():
        try:
            data = svc.developer_overview(current_user_id(), target_date=date_arg("date"))
            return jsonify({"success": True, "data": data})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to get online status", e)

    @app.route("/api/developer/online-status/check-in", methods=["POST"], endpoint="developer_check_in")
    @login_required
    def developer_check_in():
        data = json_body()
        try:
            record = svc.check_in(
                current_user_id(),
                mood=data.get("mood"),
                description=data.get("description"),
            )
            return jsonify({"success": True, "checkIn": record.to_dict()}), 201
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to check in", e)

    @app.route("/api/manager/online-status", endpoint="manager_online_status")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_online_status():
        try:
            data = svc.manager_overview(
                current_user_id(),
                target_date=date_arg("date"),
                user_id=int_arg("userId", 0) or None,
            )
            return jsonify({"success": True, "data": data})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to get online status data", e)

    @app.route("/api/manager/online-status/developer", endpoint="manager_developer_status")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_developer_status():
        developer_id = request.args.get("developerId")
        if not developer_id:
            return json_error("Developer ID is required", 400)
        try:
            data = svc.developer_detail(
                current_user_id(), as_int(developer_id, "developerId"), days=int_arg("days", HISTORY_DAYS)
            )
            return jsonify({"success": True, "data": data})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to get developer status", e)

    @app.route("/api/manager/online-status/edit", methods=["PUT", "DELETE"], endpoint="manager_edit_status")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_edit_status():
        try:
            if request.method == "DELETE":
                record_id = request.args.get("recordId")
                if not record_id:
                    return json_error("Record ID is required", 400)
                svc.delete_record(current_user_id(), as_int(record_id, "recordId"))
                return jsonify({"success": True, "message": "Record deleted successfully"})

            data = json_body()
            if not data.get("recordId"):
                return json_error("Record ID is required", 400)
            record = svc.edit_record(
                current_user_id(),
                as_int(data["recordId"], "recordId"),
                status=data.get("status"),
                mood=data.get("mood"),
                description=data.get("description"),
                reason=data.get("editReason"),
            )
            return jsonify({"success": True, "message": "Record updated successfully", "record": record.to_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to update record", e)
