import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import httpx
import pytest

# Ensure settings are resolved from test env before app modules import.
os.environ["ENVIRONMENT"] = "test"
os.environ["TELEGRAM_BOT_TOKEN"] = "test-bot-token"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["TELEGRAM_ERROR_CHAT_ID"] = ""
os.environ["LOG_FILE"] = str(Path(tempfile.gettempdir()) / "chatrelay-test" / "app.log")
os.environ.pop("GEMINI_CONFIG_PATH", None)

TELEGRAM_SEND_URL = "api.telegram.org/bottest-bot-token/sendMessage"
GEMINI_URL = "generativelanguage.googleapis.com"


class FakeHTTP:
    """Stands in for ``httpx.Client``; records every POST and answers from registered routes."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self._routes: list[tuple[str, dict[str, Any]]] = []

    def add(
        self,
        url_fragment: str,
        *,
        status_code: int = 200,
        json: Any = None,
        text: str | None = None,
        exc: Exception | None = None,
    ) -> None:
        self._routes.append(
            (url_fragment, {"status_code": status_code, "json": json, "text": text, "exc": exc})
        )

    def calls_to(self, url_fragment: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if url_fragment in call["url"]]

    def __call__(self, *args: Any, **kwargs: Any) -> "_FakeClient":
        return _FakeClient(self, timeout=kwargs.get("timeout"))

    def respond(self, url: str, kwargs: dict[str, Any], timeout: Any) -> httpx.Response:
        self.calls.append({"url": url, "timeout": timeout, **kwargs})
        request = httpx.Request("POST", url)
        for fragment, route in reversed(self._routes):
            if fragment not in url:
                continue
            if route["exc"] is not None:
                raise route["exc"]
            if route["text"] is not None:
                return httpx.Response(route["status_code"], text=route["text"], request=request)
            return httpx.Response(route["status_code"], json=route["json"], request=request)
        raise httpx.ConnectError("No fake route registered", request=request)


class _FakeClient:
    def __init__(self, http: FakeHTTP, *, timeout: Any) -> None:
        self._http = http
        self._timeout = timeout

    def __enter__(self) -> "_FakeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return self._http.respond(url, kwargs, self._timeout)


@pytest.fixture(autouse=True)
def fake_http(monkeypatch) -> FakeHTTP:
    """Every test runs without network access; routes are opted into per test."""
    fake = FakeHTTP()
    monkeypatch.setattr(httpx, "Client", fake)
    return fake


@pytest.fixture(autouse=True)
def reset_state():
    from chatrelay.clients.gemini import clear_gemini_config_cache
    from chatrelay.core.config import get_settings

    get_settings.cache_clear()
    clear_gemini_config_cache()
    yield
    get_settings.cache_clear()
    clear_gemini_config_cache()


@pytest.fixture
def make_settings():
    from chatrelay.core.config import Settings

    def _make(**overrides: Any) -> Settings:
        return Settings(**overrides)

    return _make


def _is_pytest_handler(handler: logging.Handler) -> bool:
    # pytest attaches its own capture handlers per test phase.
    return type(handler).__module__.startswith("_pytest")


@pytest.fixture
def restore_root_logging():
    """Undo handler changes made by ``configure_logging`` inside a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers and not _is_pytest_handler(handler):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers and not _is_pytest_handler(handler):
            root.addHandler(handler)
    root.setLevel(level)


def gemini_success(text: str) -> dict[str, Any]:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def telegram_ok(message_id: int = 42) -> dict[str, Any]:
    return {"ok": True, "result": {"message_id": message_id}}
