"""
Twilio SMS over its REST API. send_sms returns True when the provider accepted the
message and False otherwise; it never raises for provider-side failures.
"""
from __future__ import annotations

import logging

import requests

from propflow.config import Settings
from propflow.core.retries import with_retries

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


class TwilioSmsClient:
    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwilioSmsClient":
        return cls(
            settings.twilio_account_sid,
            settings.twilio_auth_token,
            settings.twilio_phone_number,
            timeout=settings.sms_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    def _post(self, to_number: str, body: str) -> dict:
        url = f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"
        resp = self.session.post(
            url,
            data={"To": to_number, "From": self.from_number, "Body": body},
            auth=(self.account_sid, self.auth_token),
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def send_sms(self, to_number: str, body: str) -> bool:
        if not self.configured:
            logger.warning("SMS not sent to %s: Twilio credentials are not configured", to_number)
            return False
        try:
            result = with_retries(lambda: self._post(to_number, body))
        except requests.RequestException as e:
            logger.error("SMS to %s failed: %s", to_number, e)
            return False
        logger.info("SMS sent to %s (sid=%s)", to_number, result.get("sid"))
        return True
