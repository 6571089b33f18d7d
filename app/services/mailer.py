"""
Mailer

Outbound mail boundary used for verification and password reset codes. Delivery
itself is not part of this service: LogMailer records each dispatch in the log.
"""
import logging
from typing import Protocol

from app.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


class LogMailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    def send(self, to: str, subject: str, body: str) -> None:
        if self.settings.is_development:
            logger.info("Mail from %s to %s: %s\n%s", self.settings.MAIL_FROM, to, subject, body)
        else:
            logger.info("Mail from %s to %s: %s", self.settings.MAIL_FROM, to, subject)


def otp_message(name: str, otp: str, purpose: str, validity_minutes: int) -> str:
    return (
        f"Hello {name},\n\n"
        f"Your {purpose} code is: {otp}\n\n"
        f"This code will expire in {validity_minutes} minutes."
    )


_mailer = None


def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        _mailer = LogMailer(get_settings())
    return _mailer
