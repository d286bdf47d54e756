"""Worklog Portal package.

Role-based dashboard (manager / developer / admin) over a Jira Cloud site.
Organized by feature modules (users, organizations, jira, online_status,
worklogs, ...) with a thin Flask controller layer on top of service and
repository layers.
"""
