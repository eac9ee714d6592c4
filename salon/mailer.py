# salon/mailer.py

import logging
from functools import lru_cache
from typing import Optional, Protocol

import resend

from salon.config import settings
from salon.errors import NotificationDeliveryFailed

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> str:
        """Deliver one email and return the provider message id.

        Raises NotificationDeliveryFailed when the provider rejects it.
        """


class ResendMailer:
    """Outbound email through the Resend API."""

    def __init__(self, api_key: Optional[str] = None, from_address: Optional[str] = None):
        self.api_key = api_key or settings.resend_api_key
        self.from_address = from_address or settings.email_from_address

    def send(self, to: str, subject: str, html: str) -> str:
        if not self.api_key:
            raise NotificationDeliveryFailed("RESEND_API_KEY is not configured")

        resend.api_key = self.api_key
        params = {
            "from": self.from_address,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        try:
            response = resend.Emails.send(params)
        except Exception as exc:
            logger.warning("mailer.send_failed", extra={"to": to, "error": str(exc)})
            raise NotificationDeliveryFailed(str(exc)) from exc

        message_id = response.get("id", "") if isinstance(response, dict) else getattr(response, "id", "")
        logger.info("mailer.sent", extra={"to": to, "message_id": message_id})
        return message_id


@lru_cache(maxsize=1)
def get_mailer() -> Mailer:
    return ResendMailer()
