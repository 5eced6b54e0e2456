# sellz_auth/mailer.py
import asyncio
import logging

from fastapi import Depends
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail as SendGridMail

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    pass


class SendGridEmailSender:
    def __init__(self, api_key: str, from_email: str):
        self.api_key = api_key
        self.from_email = from_email

    async def send(self, to: str, subject: str, message: str) -> None:
        mail = SendGridMail(
            from_email=self.from_email,
            to_emails=to,
            subject=subject,
            plain_text_content=message,
        )
        try:
            loop = asyncio.get_running_loop()
            sg = SendGridAPIClient(self.api_key)
            # Run in a thread to avoid blocking async loop
            response = await loop.run_in_executor(None, sg.send, mail)
        except Exception as e:
            raise EmailDeliveryError(f"SendGrid send failed: {e}") from e
        if response.status_code >= 400:
            raise EmailDeliveryError(f"SendGrid responded with {response.status_code}")
        logger.info("Email sent to %s, status: %s", to, response.status_code)


class ConsoleEmailSender:
    """Development sender: writes the message to the log instead of mailing it."""

    async def send(self, to: str, subject: str, message: str) -> None:
        logger.warning("SendGrid not configured. Email to %s [%s]:\n%s", to, subject, message)


def build_email_sender(settings: Settings):
    if settings.SENDGRID_API_KEY and settings.MAIL_FROM_EMAIL:
        return SendGridEmailSender(settings.SENDGRID_API_KEY, settings.MAIL_FROM_EMAIL)
    return ConsoleEmailSender()


def get_email_sender(settings: Settings = Depends(get_settings)):
    return build_email_sender(settings)
