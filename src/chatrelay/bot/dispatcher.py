"""Turns one valid update into at most one reply."""

from __future__ import annotations

import logging
from collections.abc import Callable

from chatrelay.bot import messages
from chatrelay.bot.update import Update
from chatrelay.clients.gemini import GeminiClient, GenerationOutcome, GenerationResult
from chatrelay.clients.telegram import TelegramClient
from chatrelay.core.observability import log_event

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Update], str]

_FAILURE_MESSAGES: dict[GenerationOutcome, str] = {
    GenerationOutcome.CONFIG_MISSING: messages.NOT_CONFIGURED_MESSAGE,
    GenerationOutcome.NO_CONTENT: messages.NO_RESPONSE_MESSAGE,
    GenerationOutcome.TRANSPORT_FAILURE: messages.ERROR_MESSAGE,
    GenerationOutcome.REMOTE_ERROR: messages.ERROR_MESSAGE,
}


def parse_command(text: str) -> str | None:
    """Return the command name of ``/name args`` or ``/name@bot args``, else ``None``."""
    if not text.startswith(messages.COMMAND_PREFIX):
        return None
    token = text.split(maxsplit=1)[0][len(messages.COMMAND_PREFIX) :]
    name = token.split("@", 1)[0].lower()
    return name or None


class Dispatcher:
    """Validate, classify, answer and deliver.

    Commands are answered locally; anything else, including unknown commands,
    is sent to Gemini as-is. Remote failures are turned into fixed apology
    texts, and delivery problems are only logged.
    """

    def __init__(self, telegram_client: TelegramClient, gemini_client: GeminiClient) -> None:
        self.telegram_client = telegram_client
        self.gemini_client = gemini_client
        self.commands: dict[str, CommandHandler] = {
            "start": lambda update: messages.start_message(update.user_id),
            "help": lambda update: messages.HELP_MESSAGE,
        }

    def handle(self, update: Update) -> None:
        if not update.is_valid():
            log_event(logger, event="dispatch.ignored", reason="invalid_or_non_text_update")
            return

        log_event(
            logger,
            event="dispatch.started",
            chat_id=update.chat_id,
            user_id=update.user_id,
            text_length=len(update.text),
        )

        response_text = ""
        if update.text.startswith(messages.COMMAND_PREFIX):
            response_text = self.handle_command(update)

        if not response_text:
            response_text = self.handle_inquiry(update)

        if not response_text:
            log_event(logger, event="dispatch.no_response", chat_id=update.chat_id)
            return

        result = self.telegram_client.send_message(update.chat_id, response_text)
        if not result.ok:
            log_event(
                logger,
                event="dispatch.delivery_failed",
                level=logging.WARNING,
                chat_id=update.chat_id,
                detail=result.detail,
                http_code=result.status_code,
            )

    def handle_command(self, update: Update) -> str:
        """Answer a known command; return an empty string to fall through."""
        command = parse_command(update.text)
        handler = self.commands.get(command) if command else None
        if handler is None:
            log_event(logger, event="dispatch.command_unrecognized", command=command)
            return ""
        log_event(logger, event="dispatch.command", command=command, chat_id=update.chat_id)
        return handler(update)

    def handle_inquiry(self, update: Update) -> str:
        result: GenerationResult = self.gemini_client.generate(update.text)
        if result.ok:
            return result.text
        log_event(
            logger,
            event="dispatch.inquiry_failed",
            level=logging.WARNING,
            outcome=result.outcome,
            detail=result.detail,
            http_code=result.status_code,
        )
        return _FAILURE_MESSAGES.get(result.outcome, messages.ERROR_MESSAGE)
