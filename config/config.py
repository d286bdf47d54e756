"""Settings shared by every environment; overridden per module."""

import os


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "worklog_portal"),
}

DEBUG = False

# Apply database/schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB")
# Create or re-activate the bootstrap admin account on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin12345")

APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")
COMPANY_NAME = os.getenv("COMPANY_NAME", "Worklog Portal")
SESSION_DAYS = int(os.getenv("SESSION_DAYS", "7"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Atlassian OAuth 2.0 (3LO) app
ATLASSIAN_CLIENT_ID = os.getenv("ATLASSIAN_CLIENT_ID", "")
ATLASSIAN_CLIENT_SECRET = os.getenv("ATLASSIAN_CLIENT_SECRET", "")
ATLASSIAN_REDIRECT_URI = os.getenv("ATLASSIAN_REDIRECT_URI", f"{APP_BASE_URL}/api/auth/atlassian/callback")

JIRA_TIMEOUT = int(os.getenv("JIRA_TIMEOUT", "30"))

# Outgoing mail; without SMTP_HOST messages are only logged
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME") or None
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD") or None
SMTP_USE_TLS = env_flag("SMTP_USE_TLS", "1")
SMTP_SENDER = os.getenv("SMTP_SENDER", "no-reply@localhost")
