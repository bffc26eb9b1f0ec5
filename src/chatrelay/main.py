import logging

from fastapi import FastAPI

from chatrelay import __version__
from chatrelay.api.dependencies import DispatcherFactory
from chatrelay.api.middleware import RequestCorrelationMiddleware
from chatrelay.api.router import api_router
from chatrelay.clients.telegram import TelegramClient
from chatrelay.core.config import LOCAL_ENVIRONMENTS, Settings, get_settings
from chatrelay.core.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app(
    *,
    settings: Settings | None = None,
    dispatcher_factory: DispatcherFactory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()
    configure_logging(settings, alert_sender=TelegramClient(settings))
    is_local_environment = settings.environment.strip().lower() in LOCAL_ENVIRONMENTS

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url="/docs" if is_local_environment else None,
        redoc_url="/redoc" if is_local_environment else None,
        openapi_url="/openapi.json" if is_local_environment else None,
    )
    app.state.settings = settings
    app.state.dispatcher_factory = dispatcher_factory
    app.add_middleware(RequestCorrelationMiddleware)
    app.include_router(api_router)

    @app.get("/", tags=["meta"])
    def root() -> dict[str, str]:
        """Return basic service metadata."""
        payload = {
            "name": settings.app_name,
            "status": "ok",
        }
        if is_local_environment:
            payload["environment"] = settings.environment
        return payload

    logger.info("%s %s ready (environment=%s)", settings.app_name, __version__, settings.environment)
    return app


app = create_app()
