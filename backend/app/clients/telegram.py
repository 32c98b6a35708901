"""Telegram Bot API client for channel notifications."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """A message could not be delivered."""


class TelegramNotifier:
    """Posts messages to one Telegram channel."""

    BASE_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: str,
        channel_id: str,
        base_url: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.bot_token = bot_token
        self.channel_id = channel_id
        self.base_url = base_url or self.BASE_URL
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send_message(self, text: str, parse_mode: str | None = "Markdown") -> dict[str, Any]:
        """Send a message to the channel.

        Returns:
            The Bot API ``result`` object of the sent message.

        Raises:
            NotificationError: If the request fails or Telegram rejects it.
        """
        payload: dict[str, Any] = {"chat_id": self.channel_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        client = await self._get_client()
        try:
            response = await client.post(f"/bot{self.bot_token}/sendMessage", json=payload)
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("Telegram sendMessage failed: %s", e)
            raise NotificationError(f"sendMessage failed: {e}") from e
        except ValueError as e:
            raise NotificationError("Invalid JSON from Telegram") from e

        if not data.get("ok"):
            description = data.get("description", f"HTTP {response.status_code}")
            logger.error("Telegram API error (sendMessage): %s", description)
            raise NotificationError(description)

        return data.get("result", {})
