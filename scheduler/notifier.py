"""
Alert delivery for the daily run.

EmailNotifier sends plain-text mail through the Resend API; LogNotifier
writes the alert to the structured log when email is not configured.
"""

from typing import List

import resend
import structlog

from utilities.config import WatcherConfig

logger = structlog.get_logger(__name__)


class Notifier:
    """Delivers a subject and body somewhere a person will see them."""

    def send(self, subject: str, body: str) -> None:
        raise NotImplementedError


class LogNotifier(Notifier):
    """Writes alerts to the log only."""

    def __init__(self):
        self.logger = logger.bind(component="log_notifier")

    def send(self, subject: str, body: str) -> None:
        self.logger.warning("Change detection alert", subject=subject, message=body)


class EmailNotifier(Notifier):
    """Service for sending alert emails using the Resend API."""

    def __init__(self, api_key: str, from_email: str, to_emails: List[str], from_name: str = "Rota Watch"):
        """
        Initialize the email notifier.

        Args:
            api_key: Resend API key
            from_email: Sender address
            to_emails: Recipient addresses
            from_name: Sender display name
        """
        if not to_emails:
            raise ValueError("At least one recipient is required")
        # Resend reads the API key at module level
        resend.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.to_emails = to_emails
        self.logger = logger.bind(component="email_notifier")

    def send(self, subject: str, body: str) -> None:
        """
        Send one plain-text alert email.

        Raises:
            Exception: whatever the Resend client raises on failure
        """
        params: resend.Emails.SendParams = {
            "from": f"{self.from_name} <{self.from_email}>",
            "to": self.to_emails,
            "subject": subject,
            "text": body,
        }
        email = resend.Emails.send(params)

        # Resend returns a TypedDict, so access id as a dictionary key
        email_id = email.get("id", "unknown")
        self.logger.info("Email sent", subject=subject, recipients=len(self.to_emails), email_id=email_id)


def build_notifier(settings: WatcherConfig) -> Notifier:
    """Pick email delivery when fully configured, log delivery otherwise."""
    if settings.email_configured():
        recipients = [address.strip() for address in settings.email_to.split(",") if address.strip()]
        return EmailNotifier(settings.resend_api_key, settings.email_from, recipients)

    logger.info("Email not configured, alerts will be logged only")
    return LogNotifier()
