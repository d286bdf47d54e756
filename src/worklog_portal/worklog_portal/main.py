from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .admin.controller import register as register_admin
from .container import Container, build_container
from .database.bootstrap import apply_schema, ensure_admin_user, list_tables
from .jira.controller import register as register_jira
from .oauth.controller import register as register_oauth
from .online_status.controller import register as register_online_status
from .organizations.controller import register as register_organizations
from .users.controller import register as register_users
from .worklogs.controller import register as register_worklogs

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    _configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["APP_BASE_URL"] = getattr(settings, "APP_BASE_URL", "http://localhost:5000").rstrip("/")
    app.permanent_session_lifetime = timedelta(days=int(getattr(settings, "SESSION_DAYS", 7)))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        container = build_container(db_config=db_config, settings=settings)

        if getattr(settings, "AUTO_INIT_DB", False):
            schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
            apply_schema(container.conn, database=db_config["database"], schema_path=schema_path)
            logger.info("schema ready (tables=%d)", len(list_tables(container.conn)))
        if getattr(settings, "AUTO_SEED_DB", False):
            ensure_admin_user(
                container.conn,
                email=getattr(settings, "ADMIN_EMAIL", "admin@example.com"),
                password=getattr(settings, "ADMIN_PASSWORD", "admin12345"),
            )

    register_users(app, container)
    register_organizations(app, container)
    register_jira(app, container)
    register_oauth(app, container)
    register_online_status(app, container)
    register_worklogs(app, container)
    register_admin(app, container)

    return app
