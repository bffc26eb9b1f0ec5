"""Telegram webhook response contracts."""

from typing import Literal

from pydantic import BaseModel


class TelegramWebhookAck(BaseModel):
    """Webhook acknowledgement payload. Always sent with HTTP 200."""

    ok: bool = True
    status: Literal["processed", "ignored", "error"]
