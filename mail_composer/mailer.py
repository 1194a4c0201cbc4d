"""Flask extension that builds, renders and sends :class:`MailMessage` objects."""
from __future__ import annotations

import logging
import posixpath
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional, Sequence

from flask import Flask, current_app, has_app_context, render_template
from flask_mail import Mail, Message
from jinja2 import ChoiceLoader, FileSystemLoader, Template

from .message import EXTENSION_KEY, MailMessage, set_message_body


logger = logging.getLogger(__name__)

VIEWS_REGISTERED_KEY = "mailer.views_registered"


def _language_variants(language: str) -> list[str]:
    variants = [language]
    primary = language.replace("-", "_").split("_", 1)[0]
    if primary and primary != language:
        variants.append(primary)
    return variants


class Mailer:
    """Mail component bound to a Flask application.

    Wraps :class:`flask_mail.Mail` for delivery and Flask's Jinja environment
    for rendering message bodies from views.
    """

    def __init__(self, app: Flask | None = None) -> None:
        self.app: Flask | None = None
        self.transport = Mail()
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.config.setdefault("MAIL_VIEW_PATH", "mail")
        app.config.setdefault("MAIL_VIEW_EXTENSION", ".html")
        app.config.setdefault("MAIL_VIEW_FOLDER", None)
        app.config.setdefault("MAIL_VIEW_LANGUAGE", None)
        app.config.setdefault("MAIL_DRY_RUN", False)
        app.config.setdefault("MAIL_LOG_MESSAGES", False)

        self.transport.init_app(app)
        app.extensions[EXTENSION_KEY] = self
        self.app = app

    @contextmanager
    def app_context(self) -> Iterator[Flask]:
        """Yield the active application, pushing our own context if none is active."""
        if has_app_context():
            yield current_app._get_current_object()
            return
        if self.app is None:
            raise RuntimeError(
                "Mailer is not bound to an application. Call init_app() first."
            )
        with self.app.app_context():
            yield self.app

    def new_message(
        self,
        subject: Optional[str] = None,
        body: Any = None,
        content_type: Optional[str] = None,
        charset: Optional[str] = None,
    ) -> Message:
        # Message() reads the default sender from the current app.
        with self.app_context():
            message = Message(subject=subject or "", charset=charset)
        if body is not None:
            set_message_body(message, body, content_type, charset)
        return message

    def compose(
        self,
        subject: Optional[str] = None,
        body: Any = None,
        content_type: Optional[str] = None,
        charset: Optional[str] = None,
        view: Optional[str] = None,
    ) -> MailMessage:
        """Create a :class:`MailMessage` bound to this mailer.

        With a ``view``, ``body`` is rendered through it instead of being
        stored as-is.
        """
        if view is None:
            return MailMessage(subject, body, content_type, charset, mailer=self)
        message = MailMessage(subject, charset=charset, mailer=self)
        message.view = view
        if body is not None:
            message.set_body(body, content_type, charset)
        return message

    def register_views(self) -> None:
        """Register ``MAIL_VIEW_FOLDER`` with the Jinja loader, once per application."""
        with self.app_context() as app:
            if app.extensions.get(VIEWS_REGISTERED_KEY):
                return
            folder = app.config.get("MAIL_VIEW_FOLDER")
            if folder:
                app.jinja_env.loader = ChoiceLoader(
                    [FileSystemLoader(folder), app.jinja_env.loader]
                )
                logger.debug(
                    "Registered mail view folder %s",
                    folder,
                    extra={"event": "mail.views.registered", "folder": folder},
                )
            app.extensions[VIEWS_REGISTERED_KEY] = True

    def view_candidates(self, view: str, language: Optional[str] = None) -> list[str]:
        """Template names tried for ``view``, most specific first."""
        with self.app_context() as app:
            extension = app.config["MAIL_VIEW_EXTENSION"] or ""
            view_path = app.config["MAIL_VIEW_PATH"] or ""
            language = language or app.config["MAIL_VIEW_LANGUAGE"]

        name = view
        if extension and name.endswith(extension):
            name = name[: -len(extension)]
        if "/" not in name:
            name = name.replace(".", "/")
        directory, _, filename = name.rpartition("/")
        base = posixpath.join(view_path, directory)
        filename += extension

        candidates = []
        if language:
            for code in _language_variants(language):
                candidates.append(posixpath.join(base, code, filename))
        candidates.append(posixpath.join(base, filename))
        return candidates

    def resolve_view(self, view: str, language: Optional[str] = None) -> Template:
        candidates = self.view_candidates(view, language)
        with self.app_context() as app:
            return app.jinja_env.select_template(candidates)

    def render_view(
        self,
        view: str,
        variables: Mapping[str, Any],
        language: Optional[str] = None,
    ) -> str:
        with self.app_context():
            template = self.resolve_view(view, language)
            return render_template(template, **variables)

    def send(self, message: MailMessage | Message) -> int:
        """Send ``message`` and return the number of recipients it was addressed to."""
        target = message.message if isinstance(message, MailMessage) else message
        recipients = sorted(target.send_to)
        with self.app_context() as app:
            if app.config["MAIL_LOG_MESSAGES"]:
                logger.info(
                    "Outgoing email:\n%s",
                    target.as_string(),
                    extra={"event": "mail.message", "to": recipients},
                )
            if app.config["MAIL_DRY_RUN"]:
                logger.info(
                    "Dry run, email not sent",
                    extra={
                        "event": "mail.dry_run",
                        "to": recipients,
                        "subject": target.subject,
                    },
                )
                return len(recipients)
            try:
                self.transport.send(target)
            except Exception as e:
                logger.error(
                    f"Failed to send email: {e}",
                    extra={
                        "event": "mail.send_failed",
                        "to": recipients,
                        "subject": target.subject,
                        "error": str(e),
                    },
                )
                raise
        logger.info(
            "Email sent",
            extra={"event": "mail.sent", "to": recipients, "subject": target.subject},
        )
        return len(recipients)

    def send_simple(
        self,
        sender: str,
        recipients: str | Sequence[str],
        subject: str,
        body: str,
    ) -> int:
        if isinstance(recipients, str):
            recipients = [recipients]
        message = self.compose(subject, body)
        message.sender = sender
        message.recipients = list(recipients)
        return self.send(message)

