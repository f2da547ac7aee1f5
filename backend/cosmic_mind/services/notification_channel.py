"""
Outbound notification channels.
Reminders are delivered through a Telegram bot via the Bot API's sendMessage.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

_MARKDOWN_CHARS = re.compile(r"[*_`]")


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "DeliveryResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: str) -> "DeliveryResult":
        return cls(ok=False, error=error)


class NotificationChannel(Protocol):
    async def send(self, destination: str, text: str) -> DeliveryResult:
        ...


class TelegramChannel:
    """Sends messages to a Telegram chat id through the Bot API"""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token
        self.client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    async def send(self, destination: str, text: str) -> DeliveryResult:
        """Send ``text`` as Markdown, falling back to plain text if Telegram rejects the markup"""
        if not self.enabled:
            return DeliveryResult.failure("Telegram bot not configured")
        if not destination:
            return DeliveryResult.failure("No destination chat id")

        result = await self._send_message(destination, text, parse_mode="Markdown")
        if not result.ok and result.error and _is_markup_error(result.error):
            logger.warning(f"Telegram rejected Markdown for chat {destination}, resending as plain text")
            result = await self._send_message(destination, _MARKDOWN_CHARS.sub("", text))
        return result

    async def _send_message(self, chat_id: str, text: str, parse_mode: Optional[str] = None) -> DeliveryResult:
        payload = {"chat_id": chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            response = await self.client.post(f"/bot{self.token}/sendMessage", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Telegram request to chat {chat_id} failed: {e}")
            return DeliveryResult.failure(f"transport error: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 200 and body.get("ok", False):
            return DeliveryResult.success()

        description = body.get("description") or f"HTTP {response.status_code}"
        logger.error(f"Failed to send Telegram message to chat {chat_id}: {description}")
        return DeliveryResult.failure(description)

    async def aclose(self) -> None:
        await self.client.aclose()


def _is_markup_error(error: str) -> bool:
    lowered = error.lower()
    return "parse entities" in lowered or "markdown" in lowered
