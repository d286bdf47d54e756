from __future__ import annotations

from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, from_json, to_json
from .model import CheckInWindow, JiraCredentials, Organization
from .repository import OrganizationRepository

_COLUMNS = """
    id, name, slug, description, owner_id, jira_organization_name, jira_domain, jira_email,
    jira_api_token, check_in_start, check_in_end, check_in_timezone, subscription,
    created_at, updated_at
"""


def _row_to_org(r: dict) -> Organization:
    jira = None
    if r.get("jira_domain") and r.get("jira_email") and r.get("jira_api_token"):
        jira = JiraCredentials(
            domain=r["jira_domain"],
            email=r["jira_email"],
            api_token=r["jira_api_token"],
            organization_name=r.get("jira_organization_name"),
        )
    window = None
    if r.get("check_in_start") and r.get("check_in_end"):
        window = CheckInWindow(
            start_time=r["check_in_start"],
            end_time=r["check_in_end"],
            timezone=r.get("check_in_timezone") or CheckInWindow().timezone,
        )
    return Organization(
        organization_id=int(r["id"]),
        name=r["name"],
        slug=r["slug"],
        owner_id=int(r["owner_id"]),
        description=r.get("description"),
        jira=jira,
        check_in_window=window,
        subscription=from_json(r.get("subscription"), {}),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _org_params(org: Organization) -> tuple[Any, ...]:
    j = org.jira
    w = org.check_in_window
    return (
        org.name,
        org.slug,
        org.description,
        org.owner_id,
        j.organization_name if j else None,
        j.domain if j else None,
        j.email if j else None,
        j.api_token if j else None,
        w.start_time if w else None,
        w.end_time if w else None,
        w.timezone if w else None,
        to_json(org.subscription),
    )


class MySQLOrganizationRepository(OrganizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, organization_id: int) -> Optional[Organization]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM organizations WHERE id=%s", (organization_id,))
            row = fetchone(cur)
            return _row_to_org(row) if row else None

    def slug_exists(self, slug: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS x FROM organizations WHERE slug=%s LIMIT 1", (slug,))
            return fetchone(cur) is not None

    def create(self, organization: Organization) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO organizations(
                    name, slug, description, owner_id, jira_organization_name, jira_domain,
                    jira_email, jira_api_token, check_in_start, check_in_end, check_in_timezone,
                    subscription
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _org_params(organization),
            )
            return int(cur.lastrowid)

    def update(self, organization: Organization) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE organizations SET
                    name=%s, slug=%s, description=%s, owner_id=%s, jira_organization_name=%s,
                    jira_domain=%s, jira_email=%s, jira_api_token=%s, check_in_start=%s,
                    check_in_end=%s, check_in_timezone=%s, subscription=%s
                WHERE id=%s
                """,
                _org_params(organization) + (organization.organization_id,),
            )
            return cur.rowcount > 0
