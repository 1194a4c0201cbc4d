"""Configuration helpers."""
from __future__ import annotations

import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    """Default configuration that can be overridden per environment."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Mail transport: configure for SMTP provider or Mailtrap for testing.
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "sandbox.smtp.mailtrap.io")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 2525))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME", "mailtrap-user")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", "mailtrap-pass")
    MAIL_DEFAULT_SENDER = os.environ.get(
        "MAIL_DEFAULT_SENDER", "noreply@example.com"
    )

    # Views used to render message bodies, relative to the template folder.
    MAIL_VIEW_PATH = os.environ.get("MAIL_VIEW_PATH", "mail")
    MAIL_VIEW_EXTENSION = os.environ.get("MAIL_VIEW_EXTENSION", ".html")
    MAIL_VIEW_FOLDER = os.environ.get("MAIL_VIEW_FOLDER")
    MAIL_VIEW_LANGUAGE = os.environ.get("MAIL_VIEW_LANGUAGE")

    MAIL_DRY_RUN = _env_flag("MAIL_DRY_RUN")
    MAIL_LOG_MESSAGES = _env_flag("MAIL_LOG_MESSAGES")


class TestingConfig(BaseConfig):
    TESTING = True
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "tests@example.com"
    MAIL_VIEW_FOLDER = None
    MAIL_VIEW_LANGUAGE = None
    MAIL_DRY_RUN = False
    MAIL_LOG_MESSAGES = False
