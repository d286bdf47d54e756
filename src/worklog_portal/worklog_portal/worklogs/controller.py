from __future__ import annotations

import logging
from datetime import timedelta

from flask import Flask, jsonify, request

from ..common.web import (
    current_user_id,
    date_arg,
    error_response,
    json_error,
    login_required,
    roles_required,
    server_error,
)
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, JiraApiError
from ..jira.dispatch import map_jira_error

logger = logging.getLogger(__name__)


def _project_keys() -> list[str]:
    raw = request.args.get("projectKeys") or ""
    return [k.strip() for k in raw.split(",") if k.strip()]


def _flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def register(app: Flask, container: Container) -> None:
    svc = container.worklog_service

    def _jira_failure(e: JiraApiError):
        logger.error("Jira request failed with status %s", e.status)
        body, status = map_jira_error(e)
        return json_error(body.pop("error"), status, **body)

    def _range():
        today = svc.today()
        end = date_arg("endDate") or today
        start = date_arg("startDate") or end - timedelta(days=7)
        return start, end

    @app.route("/api/developer/dashboard", endpoint="developer_dashboard")
    @login_required
    def developer_dashboard():
        try:
            data = svc.developer_dashboard(current_user_id(), date_range=request.args.get("dateRange", "this-week"))
            return jsonify({"success": True, "data": data})
        except JiraApiError as e:
            return _jira_failure(e)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch developer data", e)

    @app.route("/api/developer/rewards", endpoint="developer_rewards")
    @login_required
    def developer_rewards():
        try:
            return jsonify({"success": True, "data": svc.developer_rewards(current_user_id())})
        except JiraApiError as e:
            return _jira_failure(e)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch rewards data", e)

    @app.route("/api/manager/rewards", endpoint="manager_rewards")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_rewards():
        try:
            return jsonify({"success": True, "data": svc.manager_rewards(current_user_id())})
        except JiraApiError as e:
            return _jira_failure(e)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch rewards data", e)

    @app.route("/api/manager/worklogs", endpoint="manager_worklogs")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_worklogs():
        try:
            start, end = _range()
            data = svc.team_worklogs(current_user_id(), start=start, end=end, project_keys=_project_keys())
            return jsonify({"success": True, "data": data})
        except JiraApiError as e:
            return _jira_failure(e)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch worklogs", e)

    @app.route("/api/manager/worklogs/export", endpoint="manager_worklogs_export")
    @roles_required(Role.MANAGER, Role.ADMIN)
    def manager_worklogs_export():
        try:
            start, end = _range()
            content, mimetype, filename = svc.export_worklogs(
                current_user_id(),
                start=start,
                end=end,
                project_keys=_project_keys(),
                fmt=request.args.get("format", "csv"),
                include_individual_reports=_flag("includeIndividualReports"),
            )
        except JiraApiError as e:
            return _jira_failure(e)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to export worklogs", e)

        return app.response_class(
            content,
            mimetype=mimetype,
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )
