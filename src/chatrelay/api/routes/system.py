from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from chatrelay.api.dependencies import get_request_settings
from chatrelay.clients.gemini import load_gemini_config
from chatrelay.core.config import Settings
from chatrelay.core.exceptions import ConfigurationMissingError

router = APIRouter(tags=["system"])
REQUIRED_SETTINGS = ("telegram_bot_token", "gemini_api_key", "telegram_error_chat_id")


def _missing_settings(settings: Settings) -> list[str]:
    missing: list[str] = []
    for field_name in REQUIRED_SETTINGS:
        try:
            settings.require(field_name)
        except ConfigurationMissingError as exc:
            missing.append(exc.key)
    return missing


@router.get("/healthz")
def healthz() -> dict[str, str]:
    """Liveness probe used by orchestrators."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(settings: Annotated[Settings, Depends(get_request_settings)]) -> JSONResponse:
    """Readiness probe: required keys present and the Gemini behavior config loadable."""
    missing = _missing_settings(settings)
    gemini_configured = load_gemini_config(settings.gemini_config_path) is not None
    ready = not missing and gemini_configured
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if ready else "not_ready",
            "missing_settings": missing,
            "gemini_configured": gemini_configured,
        },
    )
