from __future__ import annotations

import logging
import os
import smtplib
import sys

import pytest
from flask import has_app_context
from jinja2 import TemplateNotFound

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mail_composer import MailMessage, create_app
from mail_composer.config import TestingConfig
from mail_composer.extensions import mail


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        yield app


@pytest.fixture
def outbox(app):
    with mail.transport.record_messages() as sent:
        yield sent


def test_extension_is_registered(app):
    assert app.extensions["mailer"] is mail
    assert app.config["MAIL_VIEW_PATH"] == "mail"
    assert app.config["MAIL_VIEW_EXTENSION"] == ".html"


def test_register_views_runs_once(app, tmp_path):
    app.config["MAIL_VIEW_FOLDER"] = str(tmp_path)
    mail.register_views()
    loader = app.jinja_env.loader
    mail.register_views()
    MailMessage("Again")
    assert app.jinja_env.loader is loader


def test_views_are_registered_for_each_app(tmp_path):
    folder_a = tmp_path / "a"
    (folder_a / "mail").mkdir(parents=True)
    (folder_a / "mail" / "only_a.html").write_text("A says {{ body }}", encoding="utf-8")
    folder_b = tmp_path / "b"
    (folder_b / "mail").mkdir(parents=True)

    app_a = create_app(TestingConfig)
    app_a.config["MAIL_VIEW_FOLDER"] = str(folder_a)
    app_b = create_app(TestingConfig)
    app_b.config["MAIL_VIEW_FOLDER"] = str(folder_b)

    with app_b.app_context():
        MailMessage("two")
    with app_a.app_context():
        message = MailMessage("one")
        message.view = "only_a"
        message.set_body("x")

    assert message.body == "A says x"


def test_view_candidates(app):
    assert mail.view_candidates("welcome") == ["mail/welcome.html"]
    assert mail.view_candidates("welcome.html") == ["mail/welcome.html"]
    assert mail.view_candidates("auth.reset") == ["mail/auth/reset.html"]
    assert mail.view_candidates("auth/reset", language="pt_BR") == [
        "mail/auth/pt_BR/reset.html",
        "mail/auth/pt/reset.html",
        "mail/auth/reset.html",
    ]


def test_view_candidates_use_configured_language(app):
    app.config["MAIL_VIEW_LANGUAGE"] = "es"
    assert mail.view_candidates("welcome") == [
        "mail/es/welcome.html",
        "mail/welcome.html",
    ]


def test_resolve_view_falls_back_to_base_template(app):
    template = mail.resolve_view("welcome", language="fr")
    assert template.name == "mail/welcome.html"
    template = mail.resolve_view("welcome", language="es_MX")
    assert template.name == "mail/es/welcome.html"


def test_resolve_view_missing_raises(app):
    with pytest.raises(TemplateNotFound):
        mail.resolve_view("does.not.exist")


def test_render_without_app_context_uses_own_app():
    create_app(TestingConfig)
    assert not has_app_context()

    message = mail.compose("Welcome aboard", {"recipient": "ada"}, view="welcome")

    assert "Welcome aboard" in message.body
    assert "Hello ada" in message.body
    assert message.message.sender == "tests@example.com"
    assert not has_app_context()


def test_message_requires_app_or_mailer():
    create_app(TestingConfig)
    with pytest.raises(RuntimeError):
        MailMessage("No context")


def test_compose_without_view_keeps_body(app):
    message = mail.compose("Hi", "Plain body", charset="utf-8")
    assert message.view is None
    assert message.body == "Plain body"
    assert message.message.charset == "utf-8"


def test_send_delivers_underlying_message(app, outbox):
    message = mail.compose("Hi", "Body")
    message.recipients = ["ada@example.com"]
    message.cc = ["grace@example.com"]

    assert mail.send(message) == 2
    assert len(outbox) == 1
    assert outbox[0] is message.message
    assert outbox[0].subject == "Hi"
    assert outbox[0].sender == "tests@example.com"


def test_send_simple(app, outbox):
    assert mail.send_simple("team@example.com", "ada@example.com", "Ping", "Pong") == 1
    assert outbox[0].recipients == ["ada@example.com"]
    assert outbox[0].sender == "team@example.com"
    assert outbox[0].body == "Pong"


def test_dry_run_logs_instead_of_sending(app, outbox, caplog):
    app.config["MAIL_DRY_RUN"] = True
    caplog.set_level(logging.INFO, logger="mail_composer.mailer")
    message = mail.compose("Hi", "Body")
    message.recipients = ["ada@example.com"]

    assert mail.send(message) == 1
    assert outbox == []
    assert any(getattr(record, "event", None) == "mail.dry_run" for record in caplog.records)


def test_send_failure_is_logged_and_raised(app, monkeypatch, caplog):
    def broken_send(message):
        raise smtplib.SMTPServerDisconnected("connection lost")

    monkeypatch.setattr(mail.transport, "send", broken_send)
    message = mail.compose("Hi", "Body")
    message.recipients = ["ada@example.com"]

    with pytest.raises(smtplib.SMTPServerDisconnected):
        mail.send(message)
    assert any(getattr(record, "event", None) == "mail.send_failed" for record in caplog.records)


def test_send_test_mail_command(app, outbox):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["send-test-mail", "ada@example.com", "--subject", "Check"])

    assert result.exit_code == 0, result.output
    assert "Sent 'Check' to 1 recipient(s)." in result.output
    assert len(outbox) == 1
    assert "Hello ada@example.com" in outbox[0].body
    assert "<h1>Check</h1>" in outbox[0].body
