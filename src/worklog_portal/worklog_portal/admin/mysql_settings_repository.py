from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, from_json, to_json
from .repository import SettingsRepository


class MySQLSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_all(self) -> dict[str, dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT section, settings FROM platform_settings")
            return {r["section"]: from_json(r["settings"], {}) for r in fetchall(cur)}

    def upsert(self, section: str, settings: dict, *, updated_by: Optional[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO platform_settings(section, settings, updated_by)
                VALUES(%s, %s, %s)
                ON DUPLICATE KEY UPDATE settings=VALUES(settings), updated_by=VALUES(updated_by)
                """,
                (section, to_json(settings), updated_by),
            )
