from __future__ import annotations

import logging

from flask import Flask, Response, jsonify

from ..common.web import current_user_id, error_response, json_body, json_error, login_required, server_error
from ..container import Container
from ..core.exceptions import DomainError, JiraApiError
from ..organizations.model import JiraCredentials
from ..organizations.service import normalize_jira_domain
from .dispatch import dispatch_action, map_jira_error

logger = logging.getLogger(__name__)


def _body_credentials(data: dict):
    creds = data.get("credentials")
    if not isinstance(creds, dict):
        return None
    if not (creds.get("domain") and creds.get("email") and creds.get("apiToken")):
        return None
    return JiraCredentials(
        domain=normalize_jira_domain(creds["domain"]),
        email=creds["email"],
        api_token=creds["apiToken"],
    )


def register(app: Flask, container: Container) -> None:
    @app.route("/api/jira", methods=["POST"], endpoint="jira_proxy")
    @login_required
    def jira_proxy():
        data = json_body()
        try:
            credentials = _body_credentials(data) or container.organization_service.credentials_for_user(
                current_user_id()
            )
            client = container.jira_client_factory(credentials)
            result = dispatch_action(client, data.get("action", ""), data.get("params"))
            return jsonify(result)
        except JiraApiError as e:
            logger.error("Jira action %s failed with status %s", data.get("action"), e.status)
            body, status = map_jira_error(e)
            message = body.pop("error")
            return json_error(message, status, **body)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("An error occurred", e)

    @app.route("/api/jira/attachment/<media_id>", endpoint="jira_attachment")
    @login_required
    def jira_attachment(media_id: str):
        try:
            credentials = container.organization_service.credentials_for_user(current_user_id())
            client = container.jira_client_factory(credentials)
            content, content_type, filename = client.fetch_attachment(media_id)
        except JiraApiError as e:
            if e.status == 404:
                return json_error(str(e), 404, mediaId=media_id)
            body, status = map_jira_error(e)
            return json_error(body.pop("error"), status, **body)
        except DomainError as e:
            return error_response(e)
        except Exception as e:
            return server_error("Failed to fetch media file", e)

        resp = Response(content, mimetype=content_type)
        resp.headers["Content-Type"] = content_type
        resp.headers["Content-Disposition"] = f'inline; filename="{filename}"'
        resp.headers["Cache-Control"] = "private, max-age=3600"
        return resp
