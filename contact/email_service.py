"""
Resend Email Service

Relays contact form messages through the Resend transactional email API.

Official Resend API Documentation:
https://resend.com/docs/api-reference/emails/send-email
"""
import logging
import uuid
from typing import Dict, List

import requests
from django.conf import settings

from .exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class ResendEmailService:
    """
    Service for sending plain-text email via the Resend API.

    Usage:
        service = ResendEmailService()
        service.send_email(
            from_email='Contact <onboarding@resend.dev>',
            to=['me@example.com'],
            subject='Hello',
            reply_to='visitor@example.com',
            text='Message body',
        )
    """

    SEND_URL = 'https://api.resend.com/emails'

    def __init__(self, api_key=None, enabled=None, timeout=None):
        self.api_key = api_key if api_key is not None else getattr(settings, 'RESEND_API_KEY', '')
        self.enabled = enabled if enabled is not None else getattr(settings, 'RESEND_ENABLED', False)
        self.timeout = timeout if timeout is not None else getattr(settings, 'RESEND_TIMEOUT', 10)

        if not self.enabled:
            logger.warning("Resend delivery disabled. Contact emails will be simulated.")
        elif not self.api_key:
            logger.warning(
                "Resend is enabled but RESEND_API_KEY is not set. "
                "Contact emails will fail!"
            )

    def send_email(
        self,
        from_email: str,
        to: List[str],
        subject: str,
        reply_to: str,
        text: str,
    ) -> Dict:
        """
        Send a plain-text email.

        Returns:
            dict: Provider response, at least {'id': ...}

        Raises:
            EmailDeliveryError: If the provider rejects the message or
                cannot be reached
        """
        if not self.enabled:
            return self._simulate_email(to, subject)

        if not self.api_key:
            raise EmailDeliveryError("RESEND_API_KEY not configured")

        payload = {
            'from': from_email,
            'to': to,
            'subject': subject,
            'reply_to': reply_to,
            'text': text,
        }

        try:
            response = requests.post(
                self.SEND_URL,
                json=payload,
                headers={'Authorization': f'Bearer {self.api_key}'},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise EmailDeliveryError(f"Resend request timed out after {self.timeout}s") from exc
        except requests.exceptions.RequestException as exc:
            raise EmailDeliveryError(f"Resend network error: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise EmailDeliveryError(
                f"Resend API returned status {response.status_code}: {response.text}"
            )

        data = response.json() if response.content else {}
        logger.info(f"Contact email sent to {', '.join(to)}. Id: {data.get('id')}")
        return data

    def _simulate_email(self, to, subject):
        """Log the email instead of sending it (development mode)."""
        message_id = f'simulated-{uuid.uuid4()}'
        logger.info(f"[SIMULATED EMAIL] To: {', '.join(to)} | Subject: {subject} | Id: {message_id}")
        return {'id': message_id, 'simulated': True}
