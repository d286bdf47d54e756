from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional

import requests

from .admin.mysql_settings_repository import MySQLSettingsRepository
from .admin.repository import SettingsRepository
from .admin.service import AdminService
from .database.connection import DBConfig, DatabaseConnection
from .jira.client import JiraClient
from .mailer.mailer import LogMailer, Mailer, SMTPConfig, SMTPMailer
from .oauth.service import AtlassianOAuthService, OAuthSettings
from .online_status.mysql_online_status_repository import MySQLOnlineStatusRepository
from .online_status.repository import OnlineStatusRepository
from .online_status.service import OnlineStatusService
from .organizations.model import JiraCredentials
from .organizations.mysql_organization_repository import MySQLOrganizationRepository
from .organizations.repository import OrganizationRepository
from .organizations.service import OrganizationService
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService
from .worklogs.service import WorklogService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    organizations_repo: OrganizationRepository
    online_status_repo: OnlineStatusRepository
    settings_repo: SettingsRepository

    mailer: Mailer
    jira_client_factory: Callable[[JiraCredentials], JiraClient]

    auth_service: AuthService
    user_service: UserService
    organization_service: OrganizationService
    online_status_service: OnlineStatusService
    worklog_service: WorklogService
    oauth_service: AtlassianOAuthService
    admin_service: AdminService


def build_mailer(settings: Any) -> Mailer:
    host = getattr(settings, "SMTP_HOST", None)
    if not host:
        logger.info("SMTP_HOST not set, outgoing mail is logged only")
        return LogMailer()
    return SMTPMailer(
        SMTPConfig(
            host=host,
            port=int(getattr(settings, "SMTP_PORT", 587)),
            username=getattr(settings, "SMTP_USERNAME", None),
            password=getattr(settings, "SMTP_PASSWORD", None),
            use_tls=bool(getattr(settings, "SMTP_USE_TLS", True)),
            sender=getattr(settings, "SMTP_SENDER", "no-reply@localhost"),
        )
    )


def wire_container(
    *,
    users_repo: UserRepository,
    organizations_repo: OrganizationRepository,
    online_status_repo: OnlineStatusRepository,
    settings_repo: SettingsRepository,
    mailer: Mailer,
    jira_client_factory: Callable[[JiraCredentials], JiraClient],
    oauth_settings: OAuthSettings,
    base_url: str,
    company_name: str,
    http: Optional[requests.Session] = None,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Assemble services on top of already-built repositories."""
    organization_service = OrganizationService(organizations_repo, users_repo)

    return Container(
        conn=conn,
        users_repo=users_repo,
        organizations_repo=organizations_repo,
        online_status_repo=online_status_repo,
        settings_repo=settings_repo,
        mailer=mailer,
        jira_client_factory=jira_client_factory,
        auth_service=AuthService(users_repo, mailer, base_url=base_url, company_name=company_name),
        user_service=UserService(users_repo, mailer, base_url=base_url, company_name=company_name),
        organization_service=organization_service,
        online_status_service=OnlineStatusService(online_status_repo, users_repo, organizations_repo),
        worklog_service=WorklogService(users_repo, organization_service, jira_client_factory),
        oauth_service=AtlassianOAuthService(users_repo, oauth_settings, session=http),
        admin_service=AdminService(users_repo, settings_repo),
    )


def build_container(*, db_config: dict, settings: Any) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    http = requests.Session()

    jira_client_factory = partial(
        JiraClient,
        session=http,
        timeout=int(getattr(settings, "JIRA_TIMEOUT", 30)),
    )
    oauth_settings = OAuthSettings(
        client_id=getattr(settings, "ATLASSIAN_CLIENT_ID", ""),
        client_secret=getattr(settings, "ATLASSIAN_CLIENT_SECRET", ""),
        redirect_uri=getattr(settings, "ATLASSIAN_REDIRECT_URI", ""),
        secret_key=getattr(settings, "SECRET_KEY"),
    )

    return wire_container(
        users_repo=MySQLUserRepository(conn),
        organizations_repo=MySQLOrganizationRepository(conn),
        online_status_repo=MySQLOnlineStatusRepository(conn),
        settings_repo=MySQLSettingsRepository(conn),
        mailer=build_mailer(settings),
        jira_client_factory=jira_client_factory,
        oauth_settings=oauth_settings,
        base_url=getattr(settings, "APP_BASE_URL", "http://localhost:5000"),
        company_name=getattr(settings, "COMPANY_NAME", "Worklog Portal"),
        http=http,
        conn=conn,
    )
