from datetime import date

import pytest

from src.worklog_portal.worklog_portal.core.exceptions import JiraApiError, ValidationError
from src.worklog_portal.worklog_portal.jira.dispatch import dispatch_action, map_jira_error


class StubClient:
    def __init__(self, *, issues=None, counts=None, users=None):
        self.issues = issues or []
        self.counts = counts or {}
        self.users = users or []
        self.jql: list[str] = []

    def myself(self):
        return {"accountId": "bot"}

    def search_with_worklogs(self, jql, *, max_results=1000):
        self.jql.append(jql)
        return self.issues

    def search_jql(self, jql, *, fields=("summary",), max_results=1000, expand=None):
        self.jql.append(jql)
        if jql in self.counts:
            return [{"key": f"K-{i}"} for i in range(self.counts[jql])]
        return self.issues[:max_results]

    def users_search(self, *, max_results=1000):
        return self.users

    def projects(self):
        return [{"key": "WEB"}]


TODAY = date(2024, 5, 15)


def test_unknown_action_is_rejected():
    with pytest.raises(ValidationError, match="Invalid action"):
        dispatch_action(StubClient(), "drop-tables", {})


def test_test_connection_returns_jira_user():
    assert dispatch_action(StubClient(), "test-connection", None) == {"success": True, "user": {"accountId": "bot"}}


def test_get_worklogs_requires_dates():
    with pytest.raises(ValidationError, match="startDate is required"):
        dispatch_action(StubClient(), "get-worklogs", {"endDate": "2024-05-15"}, today=TODAY)
    with pytest.raises(ValidationError, match="Invalid endDate"):
        dispatch_action(StubClient(), "get-worklogs", {"startDate": "2024-05-01", "endDate": "15/05"}, today=TODAY)


def test_get_worklogs_flattens_issues_in_range():
    client = StubClient(
        issues=[
            {
                "key": "WEB-1",
                "fields": {
                    "summary": "Build",
                    "worklog": {
                        "worklogs": [
                            {"id": "1", "started": "2024-05-14T09:00:00.000+0000"},
                            {"id": "2", "started": "2024-04-01T09:00:00.000+0000"},
                        ]
                    },
                },
            }
        ]
    )
    result = dispatch_action(
        client,
        "get-worklogs",
        {"startDate": "2024-05-13", "endDate": "2024-05-19", "projectKeys": ["WEB"]},
        today=TODAY,
    )
    assert [w["id"] for w in result["worklogs"]] == ["1"]
    assert client.jql == ['(project = "WEB") ORDER BY updated DESC']


def test_get_users_keeps_active_atlassian_accounts():
    client = StubClient(
        users=[
            {"accountId": "a", "active": True, "accountType": "atlassian"},
            {"accountId": "b", "active": False, "accountType": "atlassian"},
            {"accountId": "c", "active": True, "accountType": "app"},
        ]
    )
    assert [u["accountId"] for u in dispatch_action(client, "get-users", {})["users"]] == ["a"]


def test_project_stats_rounds_half_up():
    client = StubClient(counts={'project = "WEB"': 8, 'project = "WEB" AND statusCategory = Done': 3})
    stats = dispatch_action(client, "get-project-stats", {"projectKey": "WEB"})
    assert stats == {"totalIssues": 8, "doneIssues": 3, "progressPercentage": 38}


def test_project_stats_without_issues():
    stats = dispatch_action(StubClient(), "get-project-stats", {"projectKey": "WEB"})
    assert stats["progressPercentage"] == 0


def test_project_count_requires_key():
    with pytest.raises(ValidationError, match="projectKey is required"):
        dispatch_action(StubClient(), "get-project-issue-count", {})


@pytest.mark.parametrize(
    "status, expected_status, message",
    [
        (401, 401, "Invalid credentials"),
        (400, 400, "Bad Request - JQL query syntax error or invalid parameters."),
        (410, 410, "JQL query not supported. This might be due to unsupported fields or syntax."),
        (503, 500, "boom"),
    ],
)
def test_map_jira_error(status, expected_status, message):
    body, code = map_jira_error(JiraApiError(status, "boom", details={"x": 1}))
    assert code == expected_status
    assert body["error"] == message
