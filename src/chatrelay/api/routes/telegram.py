"""Telegram webhook ingress route."""

import asyncio
import json
import logging
import traceback
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from chatrelay.api.dependencies import (
    DispatcherFactory,
    get_dispatcher_factory,
    get_request_settings,
)
from chatrelay.api.schemas.telegram import TelegramWebhookAck
from chatrelay.bot.update import normalize
from chatrelay.core.config import Settings
from chatrelay.core.observability import log_event

router = APIRouter(prefix="/telegram", tags=["telegram"])
logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhook"
EMPTY_PAYLOAD_BODY = "OK"
METHOD_NOT_ALLOWED_BODY = "Method Not Allowed"
NON_POST_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS", "TRACE", "CONNECT"]


def _decode_payload(raw_body: bytes) -> object | None:
    """Decode the webhook body; ``None`` for anything empty or not JSON."""
    if not raw_body.strip():
        return None
    try:
        return json.loads(raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _exception_location(exc: BaseException) -> str:
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "unknown"
    last = frames[-1]
    return f"{last.filename}:{last.lineno}"


@router.api_route(WEBHOOK_PATH, methods=NON_POST_METHODS, include_in_schema=False)
def telegram_webhook_wrong_method(request: Request) -> PlainTextResponse:
    """Only POST is accepted; everything else is answered with 405."""
    log_event(logger, event="telegram.webhook.method_not_allowed", method=request.method)
    return PlainTextResponse(
        METHOD_NOT_ALLOWED_BODY,
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers={"Allow": "POST"},
    )


@router.post(WEBHOOK_PATH, response_model=TelegramWebhookAck)
async def telegram_webhook(
    request: Request,
    settings: Annotated[Settings, Depends(get_request_settings)],
    dispatcher_factory: Annotated[DispatcherFactory, Depends(get_dispatcher_factory)],
) -> TelegramWebhookAck | JSONResponse | PlainTextResponse:
    """Process one Telegram update.

    Every outcome past method checking is acknowledged with 200 so Telegram
    does not redeliver the update; failures are only visible in the logs.
    """
    payload = _decode_payload(await request.body())
    if not payload:
        log_event(logger, event="telegram.webhook.empty_payload")
        return PlainTextResponse(EMPTY_PAYLOAD_BODY, status_code=status.HTTP_200_OK)

    # Dispatch and the failure log both run off the event loop: an ERROR record
    # may be forwarded to the operator chat with a blocking HTTP call.
    ack = await asyncio.to_thread(_process_update, payload, settings, dispatcher_factory)
    if not ack.ok:
        return JSONResponse(status_code=status.HTTP_200_OK, content=ack.model_dump(mode="json"))
    return ack


def _process_update(
    payload: object,
    settings: Settings,
    dispatcher_factory: DispatcherFactory,
) -> TelegramWebhookAck:
    try:
        dispatcher = dispatcher_factory(settings)
        update = normalize(payload)
        if update.is_valid():
            log_event(
                logger,
                event="telegram.webhook.processing",
                chat_id=update.chat_id,
                text_length=len(update.text),
            )
        else:
            log_event(logger, event="telegram.webhook.non_text_update")
        dispatcher.handle(update)
    except Exception as exc:
        log_event(
            logger,
            event="telegram.webhook.failed",
            level=logging.ERROR,
            exc_info=True,
            exception_class=type(exc).__name__,
            message=str(exc),
            location=_exception_location(exc),
        )
        return TelegramWebhookAck(ok=False, status="error")

    return TelegramWebhookAck(status="processed" if update.is_valid() else "ignored")
