from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from chatrelay.core.config import Settings
from chatrelay.core.observability import log_event

logger = logging.getLogger(__name__)

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
PROMPT_PREVIEW_LENGTH = 50
_CONFIG_LOCK = threading.Lock()


class GenerationOutcome(str, Enum):
    SUCCESS = "success"
    CONFIG_MISSING = "config_missing"
    TRANSPORT_FAILURE = "transport_failure"
    REMOTE_ERROR = "remote_error"
    NO_CONTENT = "no_content"


@dataclass(frozen=True)
class GenerationResult:
    outcome: GenerationOutcome
    text: str = ""
    detail: str | None = None
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is GenerationOutcome.SUCCESS


@dataclass(frozen=True)
class GeminiConfig:
    """Static model behavior: system instruction, tools and generation parameters."""

    system_instruction: str = ""
    tools: list[dict[str, Any]] = field(default_factory=list)
    generation_config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GeminiConfig:
        system_instruction = ""
        instruction = data.get("systemInstruction")
        parts = instruction.get("parts") if isinstance(instruction, dict) else None
        if isinstance(parts, list) and parts and isinstance(parts[0], dict):
            text = parts[0].get("text")
            system_instruction = text if isinstance(text, str) else ""
        tools = data.get("tools")
        generation_config = data.get("generationConfig")
        return cls(
            system_instruction=system_instruction,
            tools=[tool for tool in tools if isinstance(tool, dict)] if isinstance(tools, list) else [],
            generation_config=generation_config if isinstance(generation_config, dict) else {},
        )


def _read_gemini_config(path: Path) -> GeminiConfig:
    if not path.is_file():
        raise ValueError(f"Gemini configuration file not found at: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to decode {path.name}: {exc.msg}") from exc
    if not isinstance(data, dict) or not data:
        raise ValueError(f"Gemini configuration at {path} is empty")
    return GeminiConfig.from_dict(data)


_CONFIG_CACHE: dict[str, GeminiConfig | None] = {}


def load_gemini_config(path: str | Path) -> GeminiConfig | None:
    """Load and memoize the behavior config; ``None`` means "not configured".

    Each path is read at most once per process, also under concurrent callers.
    """
    key = str(Path(path).expanduser())
    with _CONFIG_LOCK:
        if key in _CONFIG_CACHE:
            return _CONFIG_CACHE[key]
        try:
            config: GeminiConfig | None = _read_gemini_config(Path(key))
        except (OSError, ValueError) as exc:
            log_event(
                logger,
                event="gemini.config.load_failed",
                level=logging.CRITICAL,
                path=key,
                error=str(exc),
            )
            config = None
        _CONFIG_CACHE[key] = config
        return config


def clear_gemini_config_cache() -> None:
    with _CONFIG_LOCK:
        _CONFIG_CACHE.clear()


def _is_parameterless(params: Any) -> bool:
    if params is None or params is True:
        return True
    return isinstance(params, (list, dict)) and not params


def normalize_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Rewrite parameterless tool toggles (``{"googleSearch": []}``) to ``{}``.

    The API rejects an empty list where it expects an empty object.
    """
    return [
        {name: {} if _is_parameterless(params) else params for name, params in tool.items()}
        for tool in tools
    ]


class GeminiClient:
    """Single-turn ``generateContent`` calls. Failures come back as tagged results."""

    def __init__(self, settings: Settings, config: GeminiConfig | None = None) -> None:
        self.settings = settings
        self._api_key = settings.require("gemini_api_key")
        self.config = config if config is not None else load_gemini_config(settings.gemini_config_path)

    @property
    def url(self) -> str:
        return f"{GEMINI_API_BASE_URL}/{self.settings.gemini_model}:generateContent"

    def build_payload(self, prompt: str) -> dict[str, Any]:
        if self.config is None:
            raise RuntimeError("Gemini configuration is not loaded")
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                },
            ],
            "generationConfig": self.config.generation_config,
            "tools": normalize_tools(self.config.tools),
            "systemInstruction": {
                "parts": [{"text": self.config.system_instruction}],
            },
        }

    def generate(self, prompt: str) -> GenerationResult:
        if self.config is None:
            log_event(logger, event="gemini.generate.not_configured", level=logging.WARNING)
            return GenerationResult(
                GenerationOutcome.CONFIG_MISSING,
                detail="AI service is not properly configured",
            )

        payload = self.build_payload(prompt)
        preview = prompt[:PROMPT_PREVIEW_LENGTH] + ("..." if len(prompt) > PROMPT_PREVIEW_LENGTH else "")
        log_event(logger, event="gemini.generate.started", prompt=preview, model=self.settings.gemini_model)
        logger.debug("Gemini payload: %s", json.dumps(payload, ensure_ascii=False))

        try:
            with httpx.Client(timeout=self.settings.gemini_timeout_seconds) as client:
                response = client.post(
                    self.url,
                    params={"key": self._api_key},
                    json=payload,
                    headers={"Accept": "application/json"},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            error = f"{type(exc).__name__}: {exc}"
            log_event(logger, event="gemini.generate.transport_failed", level=logging.ERROR, error=error)
            return GenerationResult(GenerationOutcome.TRANSPORT_FAILURE, detail=error)

        if response.status_code != 200:
            log_event(
                logger,
                event="gemini.generate.http_failed",
                level=logging.ERROR,
                http_code=response.status_code,
                response=response.text,
            )
            return GenerationResult(
                GenerationOutcome.TRANSPORT_FAILURE,
                detail=f"HTTP Code: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            log_event(
                logger,
                event="gemini.generate.undecodable_body",
                level=logging.ERROR,
                response=response.text,
            )
            return GenerationResult(
                GenerationOutcome.REMOTE_ERROR,
                detail="Response body is not valid JSON",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            data = {}

        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else None
            detail = message if isinstance(message, str) and message else "Unknown API Error"
            log_event(logger, event="gemini.generate.remote_error", level=logging.ERROR, detail=detail)
            return GenerationResult(
                GenerationOutcome.REMOTE_ERROR,
                detail=detail,
                status_code=response.status_code,
            )

        text = self._extract_text(data)
        if text:
            log_event(logger, event="gemini.generate.succeeded", text_length=len(text))
            return GenerationResult(GenerationOutcome.SUCCESS, text=text, status_code=response.status_code)

        # Usually a safety block: the call succeeded but there is no candidate text.
        log_event(
            logger,
            event="gemini.generate.no_content",
            level=logging.WARNING,
            finish_reason=self._finish_reason(data),
            prompt_feedback=data.get("promptFeedback"),
        )
        return GenerationResult(
            GenerationOutcome.NO_CONTENT,
            detail="No text candidate in response",
            status_code=response.status_code,
        )

    @staticmethod
    def _first_candidate(data: dict[str, Any]) -> dict[str, Any]:
        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return {}
        first = candidates[0]
        return first if isinstance(first, dict) else {}

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        content = GeminiClient._first_candidate(data).get("content")
        parts = content.get("parts") if isinstance(content, dict) else None
        if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
            return ""
        text = parts[0].get("text")
        return text if isinstance(text, str) else ""

    @staticmethod
    def _finish_reason(data: dict[str, Any]) -> str | None:
        reason = GeminiClient._first_candidate(data).get("finishReason")
        return reason if isinstance(reason, str) else None
