"""Exception hierarchy for mail_composer."""
from __future__ import annotations


class MailComposerError(Exception):
    """Base class for all mail_composer specific errors."""


class MemberNotFoundError(MailComposerError, AttributeError):
    """Raised when neither a message adapter nor its underlying message knows a member."""

    def __init__(self, owner: object, name: str) -> None:
        self.owner_type = type(owner).__name__
        self.member = name
        super().__init__(f"{self.owner_type!r} object has no attribute {name!r}")
