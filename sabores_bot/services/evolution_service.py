"""Client for the Evolution API (WhatsApp gateway)."""

import re
from typing import Any, Optional

import httpx

from sabores_bot.config import Settings
from sabores_bot.logging_config import get_logger
from sabores_bot.services.retry import RetryPolicy

logger = get_logger("evolution_service")

WHATSAPP_JID_SUFFIX = "@s.whatsapp.net"
WEBHOOK_EVENTS = ["MESSAGES_UPSERT"]


class EvolutionAPIError(Exception):
    """Any failed call to the Evolution API."""


class EvolutionNetworkError(EvolutionAPIError):
    """The request never got a response (DNS, connect, timeout...)."""


class EvolutionResponseError(EvolutionAPIError):
    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Evolution API returned {status_code}: {body[:200]}")


def format_phone_number(number: str, country_code: str = "55") -> str:
    """Digits only, country code prefixed if absent, WhatsApp JID suffix appended."""
    cleaned = re.sub(r"\D", "", number or "")
    if not cleaned.startswith(country_code):
        cleaned = country_code + cleaned
    return cleaned + WHATSAPP_JID_SUFFIX


class EvolutionClient:
    """Send messages and manage the instance through the Evolution API.

    Every request goes through ``retry_policy``; once retries are exhausted
    the last ``EvolutionAPIError`` is raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        instance_name: str,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        country_code: str = "55",
    ):
        if not base_url or not api_key or not instance_name:
            raise ValueError("Evolution API base_url, api_key and instance_name are required")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.instance_name = instance_name
        self.timeout = timeout
        self.country_code = country_code
        self.retry_policy = retry_policy or RetryPolicy(retry_on=(EvolutionAPIError,))

    @classmethod
    def from_settings(cls, settings: Settings) -> "EvolutionClient":
        return cls(
            settings.EVOLUTION_API_URL,
            settings.EVOLUTION_API_KEY,
            settings.INSTANCE_NAME,
            retry_policy=RetryPolicy(
                max_retries=settings.GATEWAY_MAX_RETRIES,
                base_delay_seconds=settings.GATEWAY_RETRY_BASE_SECONDS,
                retry_on=(EvolutionAPIError,),
            ),
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            country_code=settings.DEFAULT_COUNTRY_CODE,
        )

    def _headers(self) -> dict[str, str]:
        return {"apikey": self.api_key, "Content-Type": "application/json"}

    def _send_once(self, method: str, path: str, payload: Optional[dict]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            raise EvolutionNetworkError(str(e) or e.__class__.__name__) from e

        if response.status_code >= 400:
            raise EvolutionResponseError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        return self.retry_policy.call(self._send_once, method, path, payload)

    def format_phone_number(self, number: str) -> str:
        return format_phone_number(number, self.country_code)

    def send_text_message(self, number: str, text: str) -> Any:
        formatted = self.format_phone_number(number)
        logger.info(f"Sending text message to {formatted}")
        try:
            data = self._request(
                "POST",
                f"/message/sendText/{self.instance_name}",
                {"number": formatted, "text": text},
            )
        except EvolutionAPIError as e:
            logger.error(f"Error sending text message to {formatted}: {e}")
            raise
        logger.info(f"Text message sent to {formatted}")
        return data

    def send_image(self, number: str, image_url: str, caption: str = "") -> Any:
        formatted = self.format_phone_number(number)
        logger.info(f"Sending image to {formatted}")
        try:
            data = self._request(
                "POST",
                f"/message/sendMedia/{self.instance_name}",
                {"number": formatted, "mediatype": "image", "media": image_url, "caption": caption},
            )
        except EvolutionAPIError as e:
            logger.error(f"Error sending image to {formatted}: {e}")
            raise
        logger.info(f"Image sent to {formatted}")
        return data

    def get_instance_status(self) -> Any:
        try:
            data = self._request("GET", f"/instance/connectionState/{self.instance_name}")
        except EvolutionAPIError as e:
            logger.error(f"Error fetching status of instance {self.instance_name}: {e}")
            raise
        logger.info("Instance status", extra={"context": {"instance": self.instance_name, "status": data}})
        return data

    def configure_webhook(self, webhook_url: str) -> Any:
        logger.info(f"Configuring webhook: {webhook_url}")
        try:
            data = self._request(
                "POST",
                f"/webhook/set/{self.instance_name}",
                {"url": webhook_url, "webhook_by_events": False, "events": WEBHOOK_EVENTS},
            )
        except EvolutionAPIError as e:
            logger.error(f"Error configuring webhook: {e}")
            raise
        logger.info("Webhook configured")
        return data
