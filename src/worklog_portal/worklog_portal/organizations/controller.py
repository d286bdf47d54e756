from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.web import current_user_id, error_response, json_body, login_required, server_error
from ..container import Container
from ..core.exceptions import DomainError


def register(app: Flask, container: Container) -> None:
    svc = container.organization_service

    @app.route("/api/organizations", methods=["GET", "POST"], endpoint="organizations")
    @login_required
    def organizations():
        try:
            if request.method == "GET":
                org = svc.get_for_user(current_user_id())
                return jsonify({"success": True, "organization": org.to_public_dict()})

            data = json_body()
            org = svc.create(
                owner_id=current_user_id(),
                name=data.get("name", ""),
                description=data.get("description"),
                jira=data.get("jiraOrganization"),
            )
            return (
                jsonify(
                    {
                        "success": True,
                        "message": "Organization created successfully",
                        "organization": org.to_public_dict(),
                    }
                ),
                201,
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to create organization", e)

    @app.route("/api/organization/check-in-window", methods=["GET", "PUT"], endpoint="organization_check_in_window")
    @login_required
    def check_in_window():
        try:
            if request.method == "GET":
                window = svc.get_check_in_window(current_user_id())
                return jsonify({"success": True, "checkInWindow": window.to_dict()})

            data = json_body()
            window = svc.update_check_in_window(
                current_user_id(),
                start_time=data.get("startTime", ""),
                end_time=data.get("endTime", ""),
                timezone=data.get("timezone", ""),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Check-in window updated successfully",
                    "checkInWindow": window.to_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to update check-in window", e)

    @app.route("/api/user/organization", endpoint="user_organization")
    @login_required
    def user_organization():
        try:
            org = svc.get_for_user(current_user_id())
            return jsonify({"success": True, "organization": org.to_public_dict()})
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch organization data", e)

    @app.route("/api/user/jira-organization", methods=["GET", "PUT"], endpoint="user_jira_organization")
    @login_required
    def jira_organization():
        try:
            if request.method == "GET":
                creds = svc.get_jira_settings(current_user_id())
                return jsonify({"success": True, "jiraOrganization": creds.to_public_dict() if creds else None})

            data = json_body()
            creds = svc.update_jira_settings(
                current_user_id(),
                domain=data.get("domain", ""),
                email=data.get("email", ""),
                api_token=data.get("apiToken", ""),
                organization_name=data.get("organizationName"),
            )
            return jsonify(
                {
                    "success": True,
                    "message": "Jira organization updated successfully",
                    "jiraOrganization": creds.to_public_dict(),
                }
            )
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Internal server error", e)
