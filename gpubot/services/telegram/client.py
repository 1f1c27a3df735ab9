from typing import Any

import httpx
import structlog

from gpubot.core.exceptions import DeliveryError, TelegramApiError
from gpubot.schemas.telegram import Update
from gpubot.services.telegram.base import MessageDelivery

logger = structlog.get_logger()

DEFAULT_API_BASE_URL = "https://api.telegram.org"


class TelegramBot(MessageDelivery):
    """Minimal Telegram Bot API client over httpx."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        request_timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._request_timeout = request_timeout
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(connect=5.0, read=request_timeout, write=5.0, pool=5.0)
        )
        self.username: str | None = None

    async def _call(self, method: str, payload: dict | None = None, read_timeout: float | None = None) -> Any:
        """POST a Bot API method and return its ``result``."""
        url = f"{self.base_url}/bot{self._token}/{method}"
        timeout = httpx.Timeout(connect=5.0, read=read_timeout or self._request_timeout, write=5.0, pool=5.0)

        try:
            response = await self._client.post(url, json=payload or {}, timeout=timeout)
        except httpx.TimeoutException:
            raise TelegramApiError(f"Telegram {method} request timed out.", details={"method": method})
        except httpx.HTTPError as e:
            raise TelegramApiError(f"Cannot reach Telegram Bot API: {e}", details={"method": method})

        try:
            data = response.json()
        except ValueError:
            raise TelegramApiError(
                f"Telegram {method} returned a non-JSON response.",
                details={"method": method, "error_code": response.status_code},
            )

        if not data.get("ok"):
            raise TelegramApiError(
                data.get("description") or f"Telegram {method} failed.",
                details={"method": method, "error_code": data.get("error_code", response.status_code)},
            )
        return data.get("result")

    async def get_me(self) -> dict:
        """Fetch the bot's own user and remember its username."""
        me = await self._call("getMe")
        self.username = me.get("username")
        return me

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        return await self._call("deleteWebhook", {"drop_pending_updates": drop_pending_updates})

    async def get_updates(
        self,
        offset: int | None = None,
        timeout: int = 9,
        allowed_updates: list[str] | None = None,
    ) -> list[Update]:
        """Long-poll for new updates."""
        payload: dict = {"timeout": timeout}
        if offset is not None:
            payload["offset"] = offset
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates

        # The HTTP read timeout has to outlast the server-side long poll.
        read_timeout = max(self._request_timeout, timeout + 1)
        result = await self._call("getUpdates", payload, read_timeout=read_timeout)
        return [Update.model_validate(item) for item in result or []]

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: int | None = None,
    ) -> dict:
        """Send an HTML-formatted message to a chat."""
        payload: dict = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        if reply_to_message_id is not None:
            payload["reply_parameters"] = {
                "message_id": reply_to_message_id,
                "allow_sending_without_reply": True,
            }

        try:
            return await self._call("sendMessage", payload)
        except TelegramApiError as e:
            logger.warning("telegram_delivery_failed", chat_id=chat_id, reason=e.message)
            raise DeliveryError(
                f"Failed to send a message: {e.message}",
                details={"chat_id": chat_id, "error_code": e.details.get("error_code")},
            )

    async def close(self):
        """Close the underlying HTTP client."""
        await self._client.aclose()
