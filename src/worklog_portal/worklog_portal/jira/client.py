from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import requests

from ..core.constants import JIRA_MAX_RESULTS
from ..core.exceptions import JiraApiError
from ..organizations.model import JiraCredentials

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 100
WORKLOG_PAGE_SIZE = 1000


def _decode_body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text or None


class JiraClient:
    """Thin wrapper over the Jira Cloud REST v3 API (basic auth: email + API token)."""

    def __init__(
        self,
        credentials: JiraCredentials,
        *,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self._credentials = credentials
        self._session = session or requests.Session()
        self._timeout = timeout
        self.base_url = f"https://{credentials.domain}/rest/api/3"

    def _request(self, method: str, path: str, *, params: Optional[dict] = None, raw: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._session.request(
                method,
                url,
                params=params,
                auth=(self._credentials.email, self._credentials.api_token),
                headers={"Accept": "application/json" if not raw else "*/*"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.warning("Jira request %s %s failed: %s", method, path, exc)
            raise JiraApiError(0, f"Could not reach Jira: {exc}") from exc

        if not resp.ok:
            details = _decode_body(resp)
            logger.warning("Jira %s %s returned %s", method, path, resp.status_code)
            raise JiraApiError(resp.status_code, f"Jira request failed with status {resp.status_code}", details=details)
        if raw:
            return resp
        return _decode_body(resp)

    def myself(self) -> dict:
        return self._request("GET", "/myself")

    def search_jql(
        self,
        jql: str,
        *,
        fields: Iterable[str] = ("summary",),
        max_results: int = JIRA_MAX_RESULTS,
        expand: Optional[str] = None,
    ) -> list[dict]:
        """Run a JQL search following `nextPageToken` until `max_results` issues are collected."""
        issues: list[dict] = []
        token: Optional[str] = None
        while len(issues) < max_results:
            params: dict[str, Any] = {
                "jql": jql,
                "fields": ",".join(fields),
                "maxResults": min(SEARCH_PAGE_SIZE, max_results - len(issues)),
            }
            if expand:
                params["expand"] = expand
            if token:
                params["nextPageToken"] = token

            data = self._request("GET", "/search/jql", params=params) or {}
            issues.extend(data.get("issues") or [])
            token = data.get("nextPageToken")
            if not token or data.get("isLast", False):
                break
        return issues[:max_results]

    def issue_worklogs(self, issue_key: str) -> list[dict]:
        worklogs: list[dict] = []
        start_at = 0
        while True:
            data = self._request(
                "GET",
                f"/issue/{issue_key}/worklog",
                params={"startAt": start_at, "maxResults": WORKLOG_PAGE_SIZE},
            ) or {}
            page = data.get("worklogs") or []
            worklogs.extend(page)
            total = int(data.get("total", len(worklogs)))
            start_at += len(page)
            if not page or start_at >= total:
                break
        return worklogs

    def search_with_worklogs(self, jql: str, *, max_results: int = JIRA_MAX_RESULTS) -> list[dict]:
        """Search issues and make sure each carries its complete worklog list.

        The search endpoint embeds at most 20 worklogs per issue; issues with
        more are refetched through the worklog endpoint.
        """
        issues = self.search_jql(
            jql,
            fields=("summary", "status", "assignee", "worklog", "attachment", "project", "updated"),
            max_results=max_results,
            expand="worklog,worklog.attachment",
        )
        for issue in issues:
            worklog = (issue.get("fields") or {}).get("worklog") or {}
            embedded = worklog.get("worklogs") or []
            if int(worklog.get("total", len(embedded))) > len(embedded):
                worklog["worklogs"] = self.issue_worklogs(issue["key"])
                worklog["total"] = len(worklog["worklogs"])
                issue["fields"]["worklog"] = worklog
        return issues

    def users_search(self, *, max_results: int = JIRA_MAX_RESULTS) -> list[dict]:
        return self._request("GET", "/users/search", params={"maxResults": max_results}) or []

    def projects(self) -> list[dict]:
        return self._request("GET", "/project") or []

    def fetch_attachment(self, media_id: str) -> tuple[bytes, str, str]:
        """Download a worklog attachment, trying the media, content and metadata endpoints in turn."""
        filename = f"file-{media_id}"
        errors: list[JiraApiError] = []

        for path in (f"/media/{media_id}/binary", f"/attachment/content/{media_id}"):
            try:
                resp = self._request("GET", path, raw=True)
                return resp.content, resp.headers.get("content-type") or "application/octet-stream", filename
            except JiraApiError as exc:
                errors.append(exc)

        try:
            meta = self._request("GET", f"/attachment/{media_id}") or {}
            filename = meta.get("filename") or filename
            content_type = meta.get("mimeType") or "application/octet-stream"
            content_url = meta.get("content")
            if content_url and content_url.startswith(self.base_url):
                resp = self._request("GET", content_url[len(self.base_url):], raw=True)
            else:
                resp = self._request("GET", f"/attachment/content/{media_id}", raw=True)
            return resp.content, content_type, filename
        except JiraApiError as exc:
            errors.append(exc)

        logger.warning("Attachment %s not available from any Jira endpoint", media_id)
        raise JiraApiError(
            404,
            "Failed to fetch file from all Jira endpoints",
            details={"mediaId": media_id, "statuses": [e.status for e in errors]},
        )
