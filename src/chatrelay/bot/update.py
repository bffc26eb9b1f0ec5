"""Normalized view of one inbound Telegram update."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

MESSAGE_FIELDS = ("message", "edited_message")


@dataclass(frozen=True)
class Update:
    """The parts of a Telegram update the bot acts on."""

    chat_id: str = ""
    text: str = ""
    user_id: int | None = None

    def is_valid(self) -> bool:
        """An update can be answered only when it has a destination and some text."""
        return bool(self.chat_id) and bool(self.text)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _message_from_payload(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    """Pick the new message over an edited one; empty when neither is present."""
    for field in MESSAGE_FIELDS:
        message = payload.get(field)
        if isinstance(message, Mapping):
            return message
    return {}


def _chat_id(message: Mapping[str, Any]) -> str:
    chat_id = _mapping(message.get("chat")).get("id")
    if isinstance(chat_id, bool) or chat_id is None:
        return ""
    if isinstance(chat_id, (int, str)):
        return str(chat_id).strip()
    return ""


def _user_id(message: Mapping[str, Any]) -> int | None:
    user_id = _mapping(message.get("from")).get("id")
    if isinstance(user_id, bool):
        return None
    if isinstance(user_id, int):
        return user_id
    if isinstance(user_id, str):
        try:
            return int(user_id.strip())
        except ValueError:
            return None
    return None


def normalize(payload: Any) -> Update:
    """Build an ``Update`` from a decoded webhook body.

    Never raises: anything missing or of the wrong shape degrades to an empty
    value and ``Update.is_valid`` decides whether the update is acted on.
    """
    message = _message_from_payload(_mapping(payload))
    text = message.get("text")
    return Update(
        chat_id=_chat_id(message),
        text=text.strip() if isinstance(text, str) else "",
        user_id=_user_id(message),
    )
