"""
accesslog: Application Factory
================================

What:  A minimal FastAPI app with the access-log middleware installed.
Why:   Lets the shim be run on its own (uvicorn accesslog.main:app) and gives
       the integration tests a real ASGI app to drive.
How:   create_app() sets up logging in the lifespan, adds
       AccessLogMiddleware and mounts a /health route.

Logging:
    setup_logging() sends everything to stdout in a plain format. The access
    line is already fully formatted by LoggingSink, so the handler format
    only adds a timestamp and the level. uvicorn's own access log is turned
    down because this middleware replaces it.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI

from accesslog import __version__
from accesslog.config import AccessLogSettings
from accesslog.config import settings as default_settings
from accesslog.middleware import AccessLogMiddleware
from accesslog.sinks import DiagnosticSink

logger = logging.getLogger(__name__)


def setup_logging(settings: Optional[AccessLogSettings] = None) -> None:
    """
    Configure root logging for the app.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_app(
    sink: Optional[DiagnosticSink] = None,
    settings: Optional[AccessLogSettings] = None,
) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        sink:      Record sink for the middleware (default: LoggingSink)
        settings:  Settings shared by logging setup and the middleware
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        setup_logging(settings)
        logger.info("accesslog %s starting (format=%s)", __version__, settings.log_format)
        yield
        logger.info("Shutdown complete.")

    app = FastAPI(title="accesslog", version=__version__, lifespan=lifespan)

    app.add_middleware(AccessLogMiddleware, sink=sink, settings=settings)

    @app.get("/health")
    async def health_check() -> dict:
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
