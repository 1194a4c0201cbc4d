"""Application factory and public API for mail_composer."""
from __future__ import annotations

import click
from flask import Flask

from .config import BaseConfig
from .exceptions import MailComposerError, MemberNotFoundError
from .extensions import mail
from .mailer import Mailer
from .message import MailMessage


def create_app(config_object: type[BaseConfig] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or BaseConfig)

    mail.init_app(app)

    # Provide CLI helper to check mail settings and views.
    @app.cli.command("send-test-mail")
    @click.argument("recipient")
    @click.option("--subject", default="Test message", show_default=True)
    @click.option("--view", default="welcome", show_default=True)
    def send_test_mail_command(recipient: str, subject: str, view: str) -> None:
        """Render VIEW and send it to RECIPIENT."""
        message = mail.compose(subject, view=view)
        message.recipients = [recipient]
        message.set_body({"recipient": recipient})
        sent = mail.send(message)
        click.echo(f"Sent {subject!r} to {sent} recipient(s).")

    return app

