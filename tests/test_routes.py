"""HTTP-level checks through the Flask test client with in-memory repositories."""
from urllib.parse import parse_qs, urlparse

from tests.fakes import make_response


def test_login_and_me(client):
    resp = client.post("/api/auth/login", json={"email": "dev@acme.io", "password": "password123"})
    assert resp.status_code == 200
    assert resp.get_json()["user"]["role"] == "DEVELOPER"

    me = client.get("/api/auth/me")
    assert me.get_json()["user"]["email"] == "dev@acme.io"

    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_login_failure_shape(client):
    resp = client.post("/api/auth/login", json={"email": "dev@acme.io", "password": "bad"})
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "error": "Invalid email or password"}


def test_signup_conflict_is_409(client):
    resp = client.post(
        "/api/auth/signup",
        json={
            "email": "maria@acme.io",
            "password": "longenough",
            "confirmPassword": "longenough",
            "firstName": "M",
            "lastName": "R",
        },
    )
    assert resp.status_code == 409


def test_forgot_password_always_succeeds(client, mailer):
    resp = client.post("/api/auth/forgot-password", json={"email": "ghost@acme.io"})
    assert resp.status_code == 200
    assert mailer.sent == []


def test_role_checks(login):
    client = login(3)
    assert client.get("/api/admin/stats").status_code == 403
    assert client.get("/api/manager/online-status").status_code == 403


def test_check_in_then_duplicate(login):
    client = login(3)
    first = client.post("/api/developer/online-status/check-in", json={"mood": "happy"})
    assert first.status_code == 201
    record = first.get_json()["checkIn"]
    assert record["mood"] == "happy"

    again = client.post("/api/developer/online-status/check-in", json={})
    assert again.status_code == 409
    body = again.get_json()
    assert body["success"] is False
    assert body["checkIn"]["id"] == record["id"]


def test_manager_edit_requires_record_id(login):
    client = login(2)
    assert client.put("/api/manager/online-status/edit", json={}).get_json()["error"] == "Record ID is required"
    resp = client.delete("/api/manager/online-status/edit?recordId=abc")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid recordId"


def test_check_in_window_update(login):
    client = login(2)
    resp = client.put(
        "/api/organization/check-in-window",
        json={"startTime": "09:00", "endTime": "08:00", "timezone": "UTC"},
    )
    assert resp.status_code == 400
    resp = client.put(
        "/api/organization/check-in-window",
        json={"startTime": "09:00", "endTime": "11:00", "timezone": "UTC+2"},
    )
    assert resp.get_json()["checkInWindow"] == {"startTime": "09:00", "endTime": "11:00", "timezone": "UTC+2"}


def test_jira_settings_hide_token(login):
    body = login(2).get("/api/user/jira-organization").get_json()
    assert body["jiraOrganization"]["hasApiToken"] is True
    assert "secret-token" not in str(body)


def test_invite_returns_201(login, mailer):
    resp = login(2).post("/api/users/invite", json={"firstName": "Ivy", "lastName": "Ng", "email": "ivy@acme.io"})
    assert resp.status_code == 201
    assert resp.get_json()["emailSent"] is True
    assert mailer.sent[0][0] == "ivy@acme.io"


def test_jira_proxy_requires_login(client):
    assert client.post("/api/jira", json={"action": "test-connection"}).status_code == 401


def test_jira_proxy_test_connection(login, http):
    http.on("GET", "/rest/api/3/myself", make_response(200, {"accountId": "bot"}))
    resp = login(3).post("/api/jira", json={"action": "test-connection"})
    assert resp.get_json() == {"success": True, "user": {"accountId": "bot"}}
    assert http.calls[0]["auth"] == ("bot@acme.io", "secret-token")


def test_jira_proxy_body_credentials_win(login, http):
    http.on("GET", "/myself", make_response(200, {"accountId": "other"}))
    login(5).post(
        "/api/jira",
        json={
            "action": "test-connection",
            "credentials": {"domain": "https://other.atlassian.net/", "email": "me@o.io", "apiToken": "t"},
        },
    )
    assert http.calls[0]["url"] == "https://other.atlassian.net/rest/api/3/myself"


def test_jira_proxy_errors(login, http):
    client = login(3)
    resp = client.post("/api/jira", json={"action": "nope"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid action"

    http.on("GET", "/myself", make_response(401, {"errorMessages": ["bad token"]}))
    resp = client.post("/api/jira", json={"action": "test-connection"})
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "error": "Invalid credentials"}


def test_jira_attachment_is_served_inline(login, http):
    http.on("GET", "/media/m1/binary", make_response(200, content=b"\x89PNG", headers={"content-type": "image/png"}))
    resp = login(3).get("/api/jira/attachment/m1")
    assert resp.status_code == 200
    assert resp.data == b"\x89PNG"
    assert resp.headers["Content-Type"] == "image/png"
    assert resp.headers["Content-Disposition"] == 'inline; filename="file-m1"'
    assert resp.headers["Cache-Control"] == "private, max-age=3600"


def test_jira_attachment_not_found(login):
    resp = login(3).get("/api/jira/attachment/missing")
    assert resp.status_code == 404
    assert resp.get_json()["mediaId"] == "missing"


def test_worklog_export_csv(login, http):
    issues = [
        {
            "key": "WEB-1",
            "fields": {
                "summary": "Login",
                "worklog": {
                    "total": 1,
                    "worklogs": [
                        {
                            "id": "1",
                            "author": {"accountId": "acc-dev", "displayName": "Dana Dev"},
                            "started": "2024-05-14T09:00:00.000+0000",
                            "timeSpentSeconds": 7200,
                        }
                    ],
                },
            },
        }
    ]
    http.on("GET", "/search/jql", make_response(200, {"issues": issues, "isLast": True}))
    resp = login(2).get("/api/manager/worklogs/export?startDate=2024-05-13&endDate=2024-05-19&format=csv")
    assert resp.status_code == 200
    assert resp.mimetype == "text/csv"
    assert "worklogs_2024-05-13_2024-05-19.csv" in resp.headers["Content-Disposition"]
    assert "2024-05-14,Dana Dev,WEB-1,Login,2.0," in resp.data.decode("utf-8-sig")


def test_manager_worklogs_rejects_bad_date(login):
    resp = login(2).get("/api/manager/worklogs?startDate=13-05-2024")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid startDate. Use YYYY-MM-DD"


def test_atlassian_login_redirects_and_stores_nonce(client):
    resp = client.get("/api/auth/atlassian/login")
    assert resp.status_code == 302
    assert resp.headers["Location"].startswith("https://auth.atlassian.com/authorize?")
    with client.session_transaction() as sess:
        assert sess["atlassian_oauth_nonce"]


def test_atlassian_callback_error_redirects_to_login(client):
    resp = client.get("/api/auth/atlassian/callback?error=access_denied")
    location = urlparse(resp.headers["Location"])
    assert location.path == "/auth/login"
    assert parse_qs(location.query) == {"error": ["access_denied"]}

    resp = client.get("/api/auth/atlassian/callback?code=x&state=forged")
    assert parse_qs(urlparse(resp.headers["Location"]).query) == {"error": ["invalid_state"]}


def test_admin_settings(login):
    client = login(1)
    assert client.get("/api/admin/settings").get_json()["settings"]["platform"]["passwordMinLength"] == 8
    resp = client.put("/api/admin/settings", json={"section": "billing", "settings": {}})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid settings section"
    resp = client.put("/api/admin/settings", json={"section": "platform", "settings": {"maintenanceMode": True}})
    assert resp.get_json()["settings"]["maintenanceMode"] is True


def test_admin_cannot_delete_self(login):
    resp = login(1).delete("/api/admin/users/1")
    assert resp.status_code == 400
