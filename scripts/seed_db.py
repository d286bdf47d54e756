from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import get_settings_module

from src.worklog_portal.worklog_portal.database.bootstrap import ensure_admin_user
from src.worklog_portal.worklog_portal.database.connection import DatabaseConnection, DBConfig


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)
    conn = DatabaseConnection(DBConfig.from_dict(db_config))

    ensure_admin_user(conn, email=settings.ADMIN_EMAIL, password=settings.ADMIN_PASSWORD)

    print(f"OK: Admin account {settings.ADMIN_EMAIL} ready on {db_config.get('host')}/{db_config.get('database')}")


if __name__ == "__main__":
    main()
