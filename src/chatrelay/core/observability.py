"""Structured event records: a stable event name plus key-value context."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from chatrelay.core.request_context import current_request_id

MAX_FIELD_STRING_LENGTH = 500


def _normalize_field_value(value: Any) -> Any:
    """Convert runtime values into JSON-safe primitives for logs."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        if len(value) > MAX_FIELD_STRING_LENGTH:
            return value[:MAX_FIELD_STRING_LENGTH] + "..."
        return value
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    if isinstance(value, Mapping):
        return {str(k): _normalize_field_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_field_value(item) for item in value]
    return str(value)


def event_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Return the key-value context attached to a record by ``log_event``."""
    fields = getattr(record, "event_fields", None)
    return dict(fields) if isinstance(fields, dict) else {}


def log_event(
    logger: logging.Logger,
    *,
    event: str,
    level: int = logging.INFO,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """Emit one leveled record with its context serialized in a stable order.

    The normalized context also travels on the record as ``event_fields`` so
    handlers (the operator alert sink in particular) can render it without
    parsing the message.
    """
    normalized_fields = {
        key: _normalize_field_value(value) for key, value in sorted(fields.items())
    }
    request_id = current_request_id()
    if request_id is not None and "request_id" not in normalized_fields:
        normalized_fields["request_id"] = request_id
    logger.log(
        level,
        "event=%s fields=%s",
        event,
        json.dumps(normalized_fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False),
        exc_info=exc_info,
        extra={"event_name": event, "event_fields": normalized_fields},
    )
