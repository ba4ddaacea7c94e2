"""Twilio adapter for SmsSender.

Sends plain programmable-SMS messages; the OTP itself is generated and
checked by this service, not by Twilio Verify.
"""

import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from config import Settings
from domain.model.errors import DispatchError

logger = logging.getLogger(__name__)

logging.getLogger('twilio').setLevel(logging.WARNING)


class TwilioSmsSender:
    """Deliver text messages through the Twilio Messages API."""

    def __init__(self, settings: Settings, client: Client | None = None):
        self.from_number = settings.twilio_phone_number
        self.country_code = settings.sms_country_code
        if client is None:
            if not settings.twilio_sid or not settings.twilio_auth_token:
                raise ValueError(
                    "Twilio credentials not configured. "
                    "Set TWILIO_SID and TWILIO_AUTH_TOKEN environment variables."
                )
            client = Client(settings.twilio_sid, settings.twilio_auth_token)
        self.client = client

    def to_e164(self, phone: str) -> str:
        return f"{self.country_code}{phone}"

    def send(self, phone: str, body: str) -> None:
        to = self.to_e164(phone)
        try:
            message = self.client.messages.create(body=body, from_=self.from_number, to=to)
        except TwilioException as e:
            logger.error("Twilio error sending SMS", extra={"phone": phone, "error": str(e)})
            raise DispatchError() from e
        except OSError as e:
            # requests' connection errors subclass OSError
            logger.error("Network error sending SMS", extra={"phone": phone, "error": str(e)})
            raise DispatchError() from e

        logger.info("SMS sent", extra={"phone": phone, "sid": getattr(message, 'sid', None)})
