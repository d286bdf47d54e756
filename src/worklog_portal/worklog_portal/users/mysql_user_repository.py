from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import Role, UserStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, like_contains, to_json
from .model import DEFAULT_NOTIFICATION_SETTINGS, AtlassianAccount, User
from .repository import UserRepository

_COLUMNS = """
    id, email, password_hash, first_name, last_name, role, status, is_active, is_email_verified,
    organization_id, atlassian_account_id, atlassian_email, atlassian_display_name,
    atlassian_avatar_url, atlassian_access_token, atlassian_refresh_token, atlassian_token_expires,
    auth_methods, reset_password_token, reset_password_expires, invitation_token,
    invitation_expires, invited_at, notification_settings, created_at, updated_at
"""


def _row_to_user(r: dict) -> User:
    atlassian = None
    if r.get("atlassian_account_id"):
        atlassian = AtlassianAccount(
            account_id=r["atlassian_account_id"],
            email=r.get("atlassian_email"),
            display_name=r.get("atlassian_display_name"),
            avatar_url=r.get("atlassian_avatar_url"),
            access_token=r.get("atlassian_access_token"),
            refresh_token=r.get("atlassian_refresh_token"),
            token_expires=r.get("atlassian_token_expires"),
        )
    return User(
        user_id=int(r["id"]),
        email=r["email"],
        password_hash=r.get("password_hash"),
        first_name=r.get("first_name") or "",
        last_name=r.get("last_name") or "",
        role=Role(r["role"]),
        status=UserStatus(r.get("status") or UserStatus.ACTIVE.value),
        is_active=bool(r.get("is_active", True)),
        is_email_verified=bool(r.get("is_email_verified", False)),
        organization_id=r.get("organization_id"),
        atlassian=atlassian,
        auth_methods=tuple(from_json(r.get("auth_methods"), ["password"])),
        reset_password_token=r.get("reset_password_token"),
        reset_password_expires=r.get("reset_password_expires"),
        invitation_token=r.get("invitation_token"),
        invitation_expires=r.get("invitation_expires"),
        invited_at=r.get("invited_at"),
        notification_settings=from_json(r.get("notification_settings"), dict(DEFAULT_NOTIFICATION_SETTINGS)),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _user_params(user: User) -> tuple[Any, ...]:
    a = user.atlassian
    return (
        user.email,
        user.password_hash,
        user.first_name,
        user.last_name,
        user.role.value,
        user.status.value,
        int(user.is_active),
        int(user.is_email_verified),
        user.organization_id,
        a.account_id if a else None,
        a.email if a else None,
        a.display_name if a else None,
        a.avatar_url if a else None,
        a.access_token if a else None,
        a.refresh_token if a else None,
        a.token_expires if a else None,
        to_json(list(user.auth_methods)),
        user.reset_password_token,
        user.reset_password_expires,
        user.invitation_token,
        user.invitation_expires,
        user.invited_at,
        to_json(user.notification_settings),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_one(self, where: str, params: tuple) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE {where} LIMIT 1", params)
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._get_one("id=%s", (user_id,))

    def get_by_email(self, email: str) -> Optional[User]:
        return self._get_one("email=%s", (email.strip().lower(),))

    def get_by_reset_token(self, token: str) -> Optional[User]:
        return self._get_one("reset_password_token=%s", (token,))

    def get_by_invitation_token(self, token: str) -> Optional[User]:
        return self._get_one("invitation_token=%s", (token,))

    def get_active_developer_by_account(self, account_id: str) -> Optional[User]:
        return self._get_one(
            "atlassian_account_id=%s AND status='active' AND role='DEVELOPER'",
            (account_id,),
        )

    def create(self, user: User) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(
                    email, password_hash, first_name, last_name, role, status, is_active,
                    is_email_verified, organization_id, atlassian_account_id, atlassian_email,
                    atlassian_display_name, atlassian_avatar_url, atlassian_access_token,
                    atlassian_refresh_token, atlassian_token_expires, auth_methods,
                    reset_password_token, reset_password_expires, invitation_token,
                    invitation_expires, invited_at, notification_settings
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _user_params(user),
            )
            return int(cur.lastrowid)

    def update(self, user: User) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users SET
                    email=%s, password_hash=%s, first_name=%s, last_name=%s, role=%s, status=%s,
                    is_active=%s, is_email_verified=%s, organization_id=%s, atlassian_account_id=%s,
                    atlassian_email=%s, atlassian_display_name=%s, atlassian_avatar_url=%s,
                    atlassian_access_token=%s, atlassian_refresh_token=%s, atlassian_token_expires=%s,
                    auth_methods=%s, reset_password_token=%s, reset_password_expires=%s,
                    invitation_token=%s, invitation_expires=%s, invited_at=%s, notification_settings=%s
                WHERE id=%s
                """,
                _user_params(user) + (user.user_id,),
            )
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE id=%s", (user_id,))
            return cur.rowcount > 0

    def list_by_organization(self, organization_id: int, *, role: Optional[Role] = None) -> Sequence[User]:
        sql = f"SELECT {_COLUMNS} FROM users WHERE organization_id=%s"
        params: list[Any] = [organization_id]
        if role is not None:
            sql += " AND role=%s"
            params.append(role.value)
        sql += " ORDER BY first_name, last_name"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_user(r) for r in fetchall(cur)]

    def search(self, organization_id: int, query: str, *, limit: int = 20) -> Sequence[User]:
        like = like_contains(query.strip())
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM users
                WHERE organization_id=%s
                  AND (
                    email LIKE %s ESCAPE '!' OR first_name LIKE %s ESCAPE '!'
                    OR last_name LIKE %s ESCAPE '!' OR atlassian_display_name LIKE %s ESCAPE '!'
                  )
                ORDER BY first_name, last_name
                LIMIT %s
                """,
                (organization_id, like, like, like, like, int(limit)),
            )
            return [_row_to_user(r) for r in fetchall(cur)]

    def list_all(self, *, role: Optional[Role] = None) -> Sequence[User]:
        sql = f"SELECT {_COLUMNS} FROM users"
        params: tuple = ()
        if role is not None:
            sql += " WHERE role=%s"
            params = (role.value,)
        sql += " ORDER BY id DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_user(r) for r in fetchall(cur)]

    def count(
        self,
        *,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
        is_email_verified: Optional[bool] = None,
        created_since: Optional[datetime] = None,
    ) -> int:
        clauses: list[str] = []
        params: list[Any] = []
        if role is not None:
            clauses.append("role=%s")
            params.append(role.value)
        if is_active is not None:
            clauses.append("is_active=%s")
            params.append(int(is_active))
        if is_email_verified is not None:
            clauses.append("is_email_verified=%s")
            params.append(int(is_email_verified))
        if created_since is not None:
            clauses.append("created_at >= %s")
            params.append(created_since)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM users{where}", tuple(params))
            row = fetchone(cur)
            return int(row["n"]) if row else 0
