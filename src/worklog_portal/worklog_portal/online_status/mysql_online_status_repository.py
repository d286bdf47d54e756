from __future__ import annotations

from datetime import date
from typing import Any, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import CheckInType, Mood, PresenceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..organizations.model import CheckInWindow
from .model import OnlineStatusRecord
from .repository import OnlineStatusRepository

_COLUMNS = """
    id, user_id, atlassian_account_id, organization_id, status, mood, description,
    check_in_date, check_in_time, check_in_type, window_start, window_end, window_timezone,
    is_edited, edited_by, edited_at, edit_reason, original_status, original_mood,
    original_description, created_at, updated_at
"""


def _row_to_record(r: dict) -> OnlineStatusRecord:
    return OnlineStatusRecord(
        record_id=int(r["id"]),
        user_id=int(r["user_id"]),
        organization_id=int(r["organization_id"]),
        atlassian_account_id=r.get("atlassian_account_id"),
        status=PresenceStatus(r["status"]),
        mood=Mood(r["mood"]),
        description=r.get("description") or "",
        check_in_date=r["check_in_date"],
        check_in_time=r["check_in_time"],
        check_in_type=CheckInType(r["check_in_type"]),
        window=CheckInWindow(
            start_time=r["window_start"],
            end_time=r["window_end"],
            timezone=r["window_timezone"],
        ),
        is_edited=bool(r.get("is_edited")),
        edited_by=r.get("edited_by"),
        edited_at=r.get("edited_at"),
        edit_reason=r.get("edit_reason"),
        original_status=PresenceStatus(r["original_status"]) if r.get("original_status") else None,
        original_mood=r.get("original_mood"),
        original_description=r.get("original_description"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


class MySQLOnlineStatusRepository(OnlineStatusRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, record_id: int) -> Optional[OnlineStatusRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM online_status WHERE id=%s", (record_id,))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def get_for_user_and_date(self, user_id: int, check_in_date: date) -> Optional[OnlineStatusRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM online_status WHERE user_id=%s AND check_in_date=%s LIMIT 1",
                (user_id, check_in_date),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def create(self, record: OnlineStatusRecord) -> int:
        """Insert a check-in. A second row for the same user and day raises ConflictError."""
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO online_status(
                        user_id, atlassian_account_id, organization_id, status, mood, description,
                        check_in_date, check_in_time, check_in_type, window_start, window_end, window_timezone
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        record.user_id,
                        record.atlassian_account_id,
                        record.organization_id,
                        record.status.value,
                        record.mood.value,
                        record.description,
                        record.check_in_date,
                        record.check_in_time,
                        record.check_in_type.value,
                        record.window.start_time,
                        record.window.end_time,
                        record.window.timezone,
                    ),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as exc:
            # uq_online_status_user_day
            if exc.errno != errorcode.ER_DUP_ENTRY:
                raise
            raise ConflictError("Already checked in today") from exc

    def update(self, record: OnlineStatusRecord) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE online_status SET
                    status=%s, mood=%s, description=%s, is_edited=%s, edited_by=%s, edited_at=%s,
                    edit_reason=%s, original_status=%s, original_mood=%s, original_description=%s
                WHERE id=%s
                """,
                (
                    record.status.value,
                    record.mood.value,
                    record.description,
                    int(record.is_edited),
                    record.edited_by,
                    record.edited_at,
                    record.edit_reason,
                    record.original_status.value if record.original_status else None,
                    record.original_mood,
                    record.original_description,
                    record.record_id,
                ),
            )
            return cur.rowcount > 0

    def delete_by_id(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM online_status WHERE id=%s", (record_id,))
            return cur.rowcount > 0

    def list_for_user(self, user_id: int, *, since: date, limit: Optional[int] = None) -> Sequence[OnlineStatusRecord]:
        sql = f"SELECT {_COLUMNS} FROM online_status WHERE user_id=%s AND check_in_date >= %s ORDER BY check_in_date DESC, check_in_time DESC"
        params: tuple[Any, ...] = (user_id, since)
        if limit is not None:
            sql += " LIMIT %s"
            params += (int(limit),)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_organization(
        self,
        organization_id: int,
        *,
        since: date,
        until: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> Sequence[OnlineStatusRecord]:
        sql = f"SELECT {_COLUMNS} FROM online_status WHERE organization_id=%s AND check_in_date >= %s"
        params: list[Any] = [organization_id, since]
        if until is not None:
            sql += " AND check_in_date <= %s"
            params.append(until)
        if user_id is not None:
            sql += " AND user_id=%s"
            params.append(user_id)
        sql += " ORDER BY check_in_date DESC, check_in_time DESC"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]
