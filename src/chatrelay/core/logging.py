import html
import json
import logging
import logging.config
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from chatrelay.core.config import Settings
from chatrelay.core.observability import event_fields
from chatrelay.core.request_context import current_request_id

MAX_ALERT_LENGTH = 4000
_CONFIGURE_LOCK = threading.Lock()


class AlertSender(Protocol):
    """The part of the messaging client the alert handler depends on."""

    def send_message(
        self,
        chat_id: str | int,
        text: str,
        parse_mode: str | None = ...,
        disable_notification: bool = ...,
    ) -> Any: ...


class RequestIdFilter(logging.Filter):
    """Inject request correlation identifier into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = current_request_id()
        record.request_id = request_id if request_id else "-"
        return True


class OperatorAlertHandler(logging.Handler):
    """Forward high-severity records to the operator's Telegram chat.

    Records emitted while an alert is being delivered (for example the
    messaging client's own error log on a failed send) are dropped, so a broken
    alert channel cannot feed itself. Delivery problems are reported through
    ``handleError`` and never propagate to the logging call site.
    """

    def __init__(
        self,
        sender: AlertSender,
        chat_id: str,
        *,
        level: int = logging.ERROR,
        app_name: str = "chatrelay",
    ) -> None:
        super().__init__(level=level)
        self._sender = sender
        self._chat_id = chat_id
        self._app_name = app_name
        self._local = threading.local()

    @property
    def forwarding(self) -> bool:
        return bool(getattr(self._local, "active", False))

    def emit(self, record: logging.LogRecord) -> None:
        if self.forwarding:
            return
        self._local.active = True
        try:
            self._sender.send_message(
                self._chat_id,
                self.format_alert(record),
                parse_mode="HTML",
                disable_notification=False,
            )
        except Exception:
            self.handleError(record)
        finally:
            self._local.active = False

    def format_alert(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = event_fields(record)
        request_id = getattr(record, "request_id", None) or current_request_id()
        if request_id and request_id != "-":
            context.setdefault("request_id", request_id)
        if record.exc_info and record.exc_info[0] is not None:
            context.setdefault("exception_class", record.exc_info[0].__name__)

        message = record.getMessage()
        event_name = getattr(record, "event_name", None)
        if event_name:
            message = event_name
        timestamp = datetime.fromtimestamp(record.created, tz=UTC).strftime("%Y-%m-%d %H:%M:%S")
        rendered_context = json.dumps(context, indent=2, ensure_ascii=False, default=str)
        text = (
            f"<b>{html.escape(self._app_name.upper())} ERROR ALERT</b>\n"
            f"<b>Level:</b> {record.levelname}\n"
            f"<b>Time:</b> {timestamp} UTC\n"
            f"<b>Logger:</b> {html.escape(record.name)}\n"
            f"<b>Message:</b> {html.escape(message)}\n"
            f"<b>Context:</b>\n<pre>{html.escape(rendered_context)}</pre>"
        )
        if len(text) > MAX_ALERT_LENGTH:
            # Cut inside the context block and close it again.
            text = text[: MAX_ALERT_LENGTH - len("...</pre>")] + "...</pre>"
        return text


def _logging_config(settings: Settings) -> dict[str, Any]:
    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.log_level,
            "formatter": "default",
            "stream": "ext://sys.stdout",
            "filters": ["request_id"],
        }
    }
    root_level = logging.getLevelName(settings.log_level)
    if settings.log_file.strip():
        log_path = Path(settings.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "level": settings.log_file_level,
            "formatter": "default",
            "filename": str(log_path),
            "encoding": "utf-8",
            "filters": ["request_id"],
        }
        # The durable sink keeps its own threshold, usually below the console's.
        root_level = min(root_level, logging.getLevelName(settings.log_file_level))

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": (
                    "%(asctime)s %(levelname)s %(name)s "
                    "[request_id=%(request_id)s]: %(message)s"
                ),
            }
        },
        "filters": {
            "request_id": {"()": "chatrelay.core.logging.RequestIdFilter"},
        },
        "handlers": handlers,
        # httpx request lines carry the bot token in the URL.
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
        "root": {
            "level": root_level,
            "handlers": list(handlers),
        },
    }


def configure_logging(settings: Settings, alert_sender: AlertSender | None = None) -> None:
    """Configure process-wide logging: console, durable file sink and operator alerts.

    The alert handler is attached only when both a sender and
    ``TELEGRAM_ERROR_CHAT_ID`` are available.
    """
    with _CONFIGURE_LOCK:
        logging.config.dictConfig(_logging_config(settings))
        if alert_sender is None:
            return
        if settings.telegram_error_chat_id is None:
            logging.getLogger(__name__).warning(
                "TELEGRAM_ERROR_CHAT_ID is not configured; operator alerts are disabled"
            )
            return
        alert_handler = OperatorAlertHandler(
            alert_sender,
            settings.telegram_error_chat_id,
            level=logging.getLevelName(settings.operator_alert_level),
            app_name=settings.app_name,
        )
        alert_handler.addFilter(RequestIdFilter())
        logging.getLogger().addHandler(alert_handler)
