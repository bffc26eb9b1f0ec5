"""Per-request construction of the dispatch pipeline."""

from collections.abc import Callable

from fastapi import Request

from chatrelay.bot.dispatcher import Dispatcher
from chatrelay.clients.gemini import GeminiClient
from chatrelay.clients.telegram import TelegramClient
from chatrelay.core.config import Settings, get_settings

DispatcherFactory = Callable[[Settings], Dispatcher]


def build_dispatcher(settings: Settings) -> Dispatcher:
    """Wire fresh clients for one activation.

    Raises ``ConfigurationMissingError`` when ``GEMINI_API_KEY`` is unset; a
    missing bot token only disables delivery.
    """
    return Dispatcher(
        telegram_client=TelegramClient(settings),
        gemini_client=GeminiClient(settings),
    )


def get_request_settings(request: Request) -> Settings:
    """Return settings bound to the app, falling back to the process settings."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = get_settings()
    return settings


def get_dispatcher_factory(request: Request) -> DispatcherFactory:
    return getattr(request.app.state, "dispatcher_factory", None) or build_dispatcher
