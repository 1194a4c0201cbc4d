"""Email message adapter.

:class:`MailMessage` owns a :class:`flask_mail.Message` and exposes it through
its own interface. Reading, assigning or calling a member the adapter does
not declare itself is forwarded to the underlying message::

    message = MailMessage("Welcome")
    message.recipients = ["ada@example.com"]   # -> Message.recipients
    message.attach("report.pdf", "application/pdf", data)   # -> Message.attach

The adapter can also render its body from a Jinja view; see
:meth:`MailMessage.set_body`.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

from flask import current_app
from flask_mail import Message

from .exceptions import MemberNotFoundError

if TYPE_CHECKING:  # pragma: no cover
    from .mailer import Mailer


EXTENSION_KEY = "mailer"

HTML_CONTENT_TYPE = "text/html"
TEXT_CONTENT_TYPE = "text/plain"
ALTERNATIVE_CONTENT_TYPE = "multipart/alternative"

# Members of flask_mail.Message reachable through the adapter.
FORWARDED_ATTRIBUTES = frozenset(
    {
        "alts",
        "attachments",
        "bcc",
        "cc",
        "charset",
        "date",
        "extra_headers",
        "html",
        "mail_options",
        "msgId",
        "rcpt_options",
        "recipients",
        "reply_to",
        "send_to",
        "sender",
        "subject",
    }
)
FORWARDED_METHODS = frozenset(
    {
        "add_recipient",
        "as_bytes",
        "as_string",
        "attach",
        "has_bad_headers",
        "is_bad_headers",
    }
)
ALIASES = {"to": "recipients", "from_": "sender"}


def set_message_body(
    message: Message,
    body: Any,
    content_type: Optional[str] = None,
    charset: Optional[str] = None,
) -> Message:
    """Store ``body`` on a Flask-Mail message.

    HTML content types go to the ``html`` part, anything else to the plain
    text ``body``. ``charset`` is only applied when given.
    """
    if content_type and "html" in content_type.lower():
        message.html = body
    else:
        message.body = body
    if charset is not None:
        message.charset = charset
    return message


class MailMessage:
    """An outgoing email backed by a :class:`flask_mail.Message`.

    Members declared here always take precedence, and errors raised by them
    propagate as-is. Anything else is looked up on the underlying message:
    methods listed in :data:`FORWARDED_METHODS` first, then
    ``get_<name>``/``set_<name>`` accessors, then the attributes listed in
    :data:`FORWARDED_ATTRIBUTES`. A member found on neither raises
    :class:`~mail_composer.exceptions.MemberNotFoundError`.
    """

    #: Name of the view used to render the body, ``None`` for a plain body.
    #: The view receives the body variables plus ``mail``, this adapter.
    view: Optional[str] = None
    #: Language used to pick a localized variant of :attr:`view`.
    language: Optional[str] = None
    message: Optional[Message] = None
    mailer: Optional["Mailer"] = None

    def __init__(
        self,
        subject: Optional[str] = None,
        body: Any = None,
        content_type: Optional[str] = None,
        charset: Optional[str] = None,
        *,
        mailer: Optional["Mailer"] = None,
    ) -> None:
        if mailer is None:
            mailer = current_app.extensions[EXTENSION_KEY]
        self.mailer = mailer
        mailer.register_views()
        self.message = mailer.new_message(subject, body, content_type, charset)

    def __repr__(self) -> str:
        subject = self.message.subject if self.message is not None else None
        return f"<MailMessage subject={subject!r} view={self.view!r}>"

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup on the adapter failed.
        if hasattr(type(self), name):
            # One of our own members raised; let its error through.
            return object.__getattribute__(self, name)
        message = self.__dict__.get("message")
        if message is not None and not name.startswith("__"):
            target = ALIASES.get(name, name)
            if target in FORWARDED_METHODS:
                return getattr(message, target)
            getter = getattr(message, f"get_{target}", None)
            if callable(getter):
                return getter()
            if target in FORWARDED_ATTRIBUTES:
                return getattr(message, target)
        raise MemberNotFoundError(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self.__dict__ or hasattr(type(self), name):
            try:
                object.__setattr__(self, name, value)
                return
            except AttributeError as error:
                original: AttributeError = error
        else:
            original = MemberNotFoundError(self, name)
        if not self._forward_set(name, value):
            raise original

    def _forward_set(self, name: str, value: Any) -> bool:
        message = self.__dict__.get("message")
        if message is None or name.startswith("__"):
            return False
        target = ALIASES.get(name, name)
        setter = getattr(message, f"set_{target}", None)
        if callable(setter):
            setter(value)
            return True
        if target in FORWARDED_ATTRIBUTES:
            setattr(message, target, value)
            return True
        return False

    @property
    def body(self) -> Any:
        if self.message.body is not None:
            return self.message.body
        return self.message.html

    @body.setter
    def body(self, value: Any) -> None:
        self.set_body(value)

    @property
    def content_type(self) -> str:
        if self.message.html is None:
            return TEXT_CONTENT_TYPE
        if self.message.body is None:
            return HTML_CONTENT_TYPE
        return ALTERNATIVE_CONTENT_TYPE

    def set_body(
        self,
        body: Any = "",
        content_type: Optional[str] = None,
        charset: Optional[str] = None,
    ) -> Message:
        """Set the body of the message.

        Without a :attr:`view`, ``body`` is stored as given. With a view, a
        mapping ``body`` supplies the view's variables and any other value is
        passed to the view as ``body``; the rendered text becomes the body.
        Pass ``text/html`` as ``content_type`` to fill the HTML part.

        A missing view raises :class:`jinja2.TemplateNotFound` and leaves the
        message untouched.
        """
        if self.view is not None:
            if not isinstance(body, Mapping):
                body = {"body": body}
            variables = {**body, "mail": self}
            body = self.mailer.render_view(self.view, variables, self.language)
        return set_message_body(self.message, body, content_type, charset)

