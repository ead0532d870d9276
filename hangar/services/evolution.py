"""Evolution API Client - Outgoing WhatsApp texts for Hangar customers.

Only 5xx answers and transport errors are retried; a 4xx means the number
or the instance is wrong and retrying would not help.
"""

import asyncio

import httpx

from hangar.config.settings import get_settings
from hangar.utils.logger import get_logger

logger = get_logger(__name__)


def normalize_whatsapp_number(phone: str) -> str:
    """Keep digits only; Brazilian numbers without country code get 55."""
    digits = "".join(c for c in phone if c.isdigit())
    if len(digits) in (10, 11):
        digits = f"55{digits}"
    return digits


def _is_retryable(error: httpx.HTTPError) -> bool:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code >= 500
    return isinstance(error, httpx.TransportError)


class EvolutionAPIClient:
    """Sends WhatsApp texts through one Evolution API instance."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        instance_name: str | None = None,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.evolution_api_url).rstrip("/")
        self.api_key = api_key or settings.evolution_api_key
        self.instance_name = instance_name or settings.evolution_instance_name
        self.max_retries = (
            settings.notification_max_retries if max_retries is None else max_retries
        )
        self.retry_delay = (
            settings.notification_retry_delay_seconds if retry_delay is None else retry_delay
        )

        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        """Without an API key the instance rejects every call."""
        return bool(self.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "apikey": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=15.0,
            )
        return self._client

    async def send_text_message(self, to_number: str, text: str) -> dict:
        """Send a text to a customer's WhatsApp.

        Args:
            to_number: Customer phone in any format.
            text: Rendered message.

        Returns:
            Evolution API response.

        Raises:
            httpx.HTTPError: When the last attempt fails or the error is not
                retryable.
        """
        client = await self._get_client()
        number = normalize_whatsapp_number(to_number)
        url = f"/message/sendText/{self.instance_name}"
        attempts = self.max_retries + 1

        attempt = 0
        while True:
            attempt += 1
            try:
                response = await client.post(url, json={"number": number, "text": text})
                response.raise_for_status()
                result = response.json()

                logger.info(
                    "evolution_message_sent",
                    number=number,
                    attempt=attempt,
                    message_id=result.get("key", {}).get("id"),
                )
                return result

            except httpx.HTTPError as e:
                if attempt >= attempts or not _is_retryable(e):
                    logger.error(
                        "evolution_send_error",
                        number=number,
                        attempt=attempt,
                        error=str(e),
                    )
                    raise

                delay = self.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    "evolution_send_retry",
                    number=number,
                    attempt=attempt,
                    retry_in_seconds=delay,
                    error=str(e),
                )
                await asyncio.sleep(delay)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


_evolution_client: EvolutionAPIClient | None = None


def get_evolution_client() -> EvolutionAPIClient:
    """Get or create the shared Evolution API client."""
    global _evolution_client
    if _evolution_client is None:
        _evolution_client = EvolutionAPIClient()
    return _evolution_client
