"""Outbound email port used by the order and subscription notifications."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class EmailMessage:
    recipient: str
    subject: str
    body: str
    kind: str


@dataclass(frozen=True)
class Delivery:
    delivered: bool
    message_id: str | None = None
    error: str | None = None


class EmailPort(ABC):
    """Hands one rendered message to a mail transport."""

    @abstractmethod
    def deliver(self, message: EmailMessage) -> Delivery: ...
