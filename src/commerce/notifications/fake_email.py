"""In-memory mail transport for tests and local runs."""

from uuid import uuid4

from commerce.notifications.email_port import Delivery, EmailMessage, EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every delivered message in ``sent_emails``."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Mailbox unavailable"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Mailbox unavailable"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def deliver(self, message: EmailMessage) -> Delivery:
        if not self.should_succeed:
            return Delivery(delivered=False, error=self.failure_reason)

        message_id = f"mail-{uuid4().hex[:10]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": message.recipient,
                "subject": message.subject,
                "body": message.body,
                "kind": message.kind,
            }
        )
        return Delivery(delivered=True, message_id=message_id)
