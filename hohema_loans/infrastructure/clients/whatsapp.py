"""WhatsApp Cloud API client with exponential backoff retry logic"""

import asyncio
import logging
from typing import Any, Dict, List

import httpx

from hohema_loans.config import settings
from hohema_loans.domain.exceptions import WhatsAppAPIError
from hohema_loans.infrastructure.observability.metrics import (
    whatsapp_failure_counter,
    whatsapp_latency_histogram,
)

logger = logging.getLogger(__name__)


class WhatsAppClient:
    """Client for sending outbound WhatsApp messages"""

    def __init__(
        self,
        api_base: str | None = None,
        phone_number_id: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
    ):
        self.api_base = api_base or settings.whatsapp_api_base
        self.phone_number_id = phone_number_id or settings.whatsapp_phone_number_id
        self.access_token = access_token or settings.whatsapp_access_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.whatsapp_max_retries
        self.backoff_base = settings.whatsapp_backoff_base

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/{self.phone_number_id}/messages"

    async def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a message payload with retry.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1)
        - Retries on 5xx errors and network failures; 4xx fails immediately

        Raises:
            WhatsAppAPIError: After the final failed attempt
        """
        headers = {"Authorization": f"Bearer {self.access_token}"}
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                try:
                    with whatsapp_latency_histogram.time():
                        response = await client.post(self.messages_url, json=payload, headers=headers)
                        response.raise_for_status()
                        return response.json()

                except httpx.HTTPStatusError as e:
                    attempt += 1
                    whatsapp_failure_counter.inc()
                    if e.response.status_code < 500 or attempt >= self.max_retries:
                        raise WhatsAppAPIError(f"WhatsApp API error: {e.response.status_code}") from e

                except httpx.RequestError as e:
                    attempt += 1
                    whatsapp_failure_counter.inc()
                    if attempt >= self.max_retries:
                        raise WhatsAppAPIError(f"WhatsApp API unreachable: {e}") from e

                await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))

    async def send_text(self, phone_number: str, body: str) -> Dict[str, Any]:
        return await self._post(
            {
                "messaging_product": "whatsapp",
                "to": phone_number,
                "type": "text",
                "text": {"body": body},
            }
        )

    async def send_template(self, phone_number: str, template_name: str, parameters: List[str]) -> Dict[str, Any]:
        return await self._post(
            {
                "messaging_product": "whatsapp",
                "to": phone_number,
                "type": "template",
                "template": {
                    "name": template_name,
                    "language": {"code": "en"},
                    "components": [
                        {
                            "type": "body",
                            "parameters": [{"type": "text", "text": p} for p in parameters],
                        }
                    ],
                },
            }
        )

    async def send_signing_pin(self, phone_number: str, pin: str) -> None:
        """Deliver a signing PIN via the approved template, falling back to plain text"""
        try:
            await self.send_template(phone_number, settings.whatsapp_otp_template, [pin])
            return
        except WhatsAppAPIError as e:
            logger.warning("Template send failed, falling back to text: %s", e)

        try:
            await self.send_text(
                phone_number,
                f"Your Ho Hema Loans signing PIN is {pin}. It expires in {settings.pin_ttl_minutes} minutes.",
            )
        except WhatsAppAPIError as e:
            # The PIN stays valid; the applicant can request another one
            logger.error("Failed to deliver signing PIN to %s: %s", phone_number, e)
