from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from chatrelay.core.config import Settings
from chatrelay.core.exceptions import ConfigurationMissingError
from chatrelay.core.observability import log_event

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE_URL = "https://api.telegram.org"


@dataclass(frozen=True)
class DeliveryResult:
    ok: bool
    response: dict[str, Any] | None = None
    detail: str | None = None
    status_code: int | None = None

    @property
    def message_id(self) -> int | None:
        result = (self.response or {}).get("result")
        if isinstance(result, dict) and isinstance(result.get("message_id"), int):
            return result["message_id"]
        return None


class TelegramClient:
    """Sends messages through the Bot API. Every outcome is a ``DeliveryResult``."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        try:
            self._token = settings.require("telegram_bot_token")
        except ConfigurationMissingError as exc:
            log_event(logger, event="telegram.client.token_missing", level=logging.ERROR, error=str(exc))
            self._token = ""

    @property
    def enabled(self) -> bool:
        return bool(self._token)

    def _url(self, method: str) -> str:
        return f"{TELEGRAM_API_BASE_URL}/bot{self._token}/{method}"

    def send_message(
        self,
        chat_id: str | int,
        text: str,
        parse_mode: str | None = None,
        disable_notification: bool = False,
    ) -> DeliveryResult:
        if not self.enabled:
            log_event(
                logger,
                event="telegram.send.skipped",
                level=logging.ERROR,
                reason="token_missing",
                chat_id=chat_id,
            )
            return DeliveryResult(ok=False, detail="Telegram bot token is not configured")

        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode or self.settings.telegram_parse_mode,
            "disable_notification": disable_notification,
        }
        log_event(logger, event="telegram.send.started", chat_id=chat_id, text_length=len(text))

        try:
            with httpx.Client(timeout=self.settings.telegram_timeout_seconds) as client:
                response = client.post(self._url("sendMessage"), json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log_event(
                logger,
                event="telegram.send.transport_failed",
                level=logging.ERROR,
                chat_id=chat_id,
                error=f"{type(exc).__name__}: {exc}",
            )
            return DeliveryResult(ok=False, detail=f"Transport error: {type(exc).__name__}")

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code != 200 or not isinstance(data, dict) or not data.get("ok", False):
            description = data.get("description") if isinstance(data, dict) else None
            log_event(
                logger,
                event="telegram.send.rejected",
                level=logging.ERROR,
                chat_id=chat_id,
                http_code=response.status_code,
                response=data if data is not None else response.text,
            )
            return DeliveryResult(
                ok=False,
                response=data if isinstance(data, dict) else None,
                detail=description or f"HTTP Code: {response.status_code}",
                status_code=response.status_code,
            )

        result = DeliveryResult(ok=True, response=data, status_code=response.status_code)
        log_event(
            logger,
            event="telegram.send.succeeded",
            chat_id=chat_id,
            message_id=result.message_id if result.message_id is not None else "N/A",
        )
        return result
