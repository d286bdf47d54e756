import logging
from types import SimpleNamespace

from src.worklog_portal.worklog_portal.container import build_mailer
from src.worklog_portal.worklog_portal.mailer.mailer import LogMailer, SMTPMailer


def test_log_mailer_logs_and_keeps_nothing(caplog):
    mailer = LogMailer()
    with caplog.at_level(logging.INFO):
        for i in range(3):
            assert mailer.send(f"dev{i}@acme.io", "Hello", "body") is True
    assert "Mail to dev2@acme.io: Hello" in caplog.text
    assert vars(mailer) == {}


def test_build_mailer_falls_back_to_log_without_host():
    assert isinstance(build_mailer(SimpleNamespace(SMTP_HOST="")), LogMailer)
    assert isinstance(build_mailer(SimpleNamespace(SMTP_HOST="smtp.acme.io")), SMTPMailer)
