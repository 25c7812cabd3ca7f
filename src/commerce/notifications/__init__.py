"""Mailer factory.

Provides get_mailer() / set_mailer() to swap the email adapter; the fake
adapter is used until a real one is installed.
"""

from commerce.notifications.email_port import EmailPort
from commerce.notifications.fake_email import FakeEmailAdapter

_current_mailer: EmailPort | None = None


def get_mailer() -> EmailPort:
    global _current_mailer
    if _current_mailer is None:
        _current_mailer = FakeEmailAdapter()
    return _current_mailer


def set_mailer(mailer: EmailPort) -> None:
    global _current_mailer
    _current_mailer = mailer


def reset_mailer() -> None:
    global _current_mailer
    _current_mailer = None
