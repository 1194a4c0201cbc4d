"""Shared extensions."""
from __future__ import annotations

from .mailer import Mailer


mail = Mailer()
