"""
Email notification channel backed by SendGrid.

Sends transactional emails through the SendGrid v3 ``mail/send`` endpoint and
fans a single message out to many recipients concurrently.

Design decisions:
- One send call per recipient, no batching into personalizations, so every
  approver gets a greeting with their own name
- Bulk sends are issued together with ``asyncio.gather`` and joined; the
  first failure fails the whole batch and already-sent emails are not
  reported individually
- The HTML body defaults to the text body with newlines turned into ``<br>``
- No retries; the HTTP client's default timeout applies
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from shared.config import Settings, get_settings
from shared.errors import NotificationError

logger = logging.getLogger("notifications")

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


@dataclass(frozen=True)
class Recipient:
    """An email address and the name used to greet its owner."""
    email: str
    name: str


# Renders a body for one recipient name
TemplateFunc = Callable[[str], str]


def text_to_html(text: str) -> str:
    return text.replace("\n", "<br>")


class EmailChannel:
    """
    SendGrid email channel.

    Example:
        channel = EmailChannel()
        await channel.send("ann@example.com", "Hello", "Hi Ann")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the email channel.

        Args:
            settings: API key and sender address (defaults to the cached settings)
            http_client: Underlying HTTP client (defaults to a new one)
        """
        self.settings = settings or get_settings()
        self.http = http_client or httpx.AsyncClient()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
    ) -> None:
        """
        Send one email.

        Args:
            to: Recipient email address
            subject: Email subject line
            text: Plain text body
            html: HTML body (defaults to ``text`` with line breaks)

        Raises:
            NotificationError: If SendGrid rejects the message or is unreachable
        """
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.settings.sendgrid_from_email},
            "subject": subject,
            "content": [
                {"type": "text/plain", "value": text},
                {"type": "text/html", "value": html or text_to_html(text)},
            ],
        }
        logger.debug(f"[EMAIL] Preparing to {to} | Subject: {subject} | {len(text)} chars")

        try:
            response = await self.http.post(
                SENDGRID_SEND_URL,
                json=payload,
                headers={"Authorization": f"Bearer {self.settings.sendgrid_api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[EMAIL FAILED] To: {to} | Subject: {subject} | Error: {e}")
            raise NotificationError(500, f"Failed to send email: {e}") from e

        logger.info(f"[EMAIL] To: {to} | Subject: {subject}")


async def send_bulk_emails(
    channel: EmailChannel,
    recipients: list[Recipient],
    subject: str,
    text_template: TemplateFunc,
    html_template: Optional[TemplateFunc] = None,
) -> None:
    """
    Send the same email to every recipient, all at once.

    Args:
        channel: Channel to send through
        recipients: Who to send to
        subject: Subject shared by all emails
        text_template: Renders the text body for a recipient name
        html_template: Renders the HTML body for a recipient name (optional)

    Raises:
        NotificationError: If any single send fails
    """
    logger.info(f"Sending {len(recipients)} emails in parallel: {subject}")

    sends = [
        channel.send(
            recipient.email,
            subject,
            text_template(recipient.name),
            html_template(recipient.name) if html_template else None,
        )
        for recipient in recipients
    ]
    try:
        await asyncio.gather(*sends)
    except Exception as e:
        logger.error(
            f"Failed to send bulk emails to {[r.email for r in recipients]}: {e}"
        )
        raise NotificationError(500, f"Failed to send bulk emails: {e}") from e

    logger.info(f"Bulk emails sent successfully to {len(recipients)} recipients")


_channel: Optional[EmailChannel] = None


def get_email_channel() -> EmailChannel:
    """Get the process-wide email channel."""
    global _channel
    if _channel is None:
        _channel = EmailChannel()
    return _channel


def reset_email_channel(channel: Optional[EmailChannel] = None) -> None:
    """Replace the process-wide email channel (for testing)."""
    global _channel
    _channel = channel


async def close_email_channel() -> None:
    """Close the process-wide email channel, if one was created."""
    global _channel
    if _channel is not None:
        await _channel.aclose()
        _channel = None
