"""
accesslog: Access Log Middleware
==================================

What:  Emits exactly one access record for every HTTP request.
How:   Pure ASGI middleware. The app's `send` goes through a
       ResponseObserver, which counts the status and body bytes on their
       way out. When the app returns, or raises, the builder makes the
       record and passes it to the sink.

Why not BaseHTTPMiddleware:
    BaseHTTPMiddleware only hands back a Response object. It never sees
    the body bytes as they are sent, so it cannot count them. Wrapping
    `send` directly gives the observer every chunk.

Error path:
    1. If the app raised before sending a status, a plain 500 response is
       written through the observer (so the record shows 500, not 200)
    2. An error record is emitted with detail "<ExceptionType>: <message>"
    3. The exception is re-raised for the server's own error handling

Usage:
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(AccessLogMiddleware, sink=MemorySink())
"""

import asyncio
import logging
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from accesslog.builder import LogRecordBuilder, RequestClock
from accesslog.config import AccessLogSettings
from accesslog.config import settings as default_settings
from accesslog.observer import ASGIResponseWriter, ResponseObserver
from accesslog.request import RequestInfo
from accesslog.sinks import DiagnosticSink, LoggingSink

logger = logging.getLogger(__name__)

SERVER_ERROR_BODY = b"Internal Server Error"


class AccessLogMiddleware:
    """
    ASGI middleware writing one access line per request.

    Args:
        app:       The wrapped ASGI application
        sink:      Where records go (default: LoggingSink on settings.logger_name)
        settings:  AccessLogSettings (default: the module-level singleton)
    """

    def __init__(
        self,
        app: ASGIApp,
        sink: Optional[DiagnosticSink] = None,
        settings: Optional[AccessLogSettings] = None,
    ):
        self.app = app
        self.settings = settings or default_settings
        self.sink = sink if sink is not None else LoggingSink(settings=self.settings)
        self.builder = LogRecordBuilder(self.settings)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.settings.excluded_paths:
            await self.app(scope, receive, send)
            return

        clock = RequestClock.start()
        request = RequestInfo.from_scope(scope)
        writer = ASGIResponseWriter(send)
        observer = ResponseObserver(writer)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                writer.header().raw.extend(
                    (bytes(key), bytes(value)) for key, value in message.get("headers", [])
                )
                writer.start_fields.update(
                    (key, value)
                    for key, value in message.items()
                    if key not in ("type", "status", "headers")
                )
                await observer.write_header(message["status"])
            elif message["type"] == "http.response.body":
                await observer.write(
                    message.get("body", b""), message.get("more_body", False)
                )
            else:
                await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except asyncio.CancelledError:
            self.builder.log_error(self.sink, request, observer, clock, "request cancelled")
            raise
        except Exception as exc:
            detail = f"{type(exc).__name__}: {exc}"
            try:
                if not observer.wrote_header:
                    await self._send_server_error(observer)
            finally:
                self.builder.log_error(self.sink, request, observer, clock, detail)
            raise
        self.builder.log_access(self.sink, request, observer, clock)

    async def _send_server_error(self, observer: ResponseObserver) -> None:
        headers = observer.header()
        headers["content-type"] = "text/plain; charset=utf-8"
        headers["content-length"] = str(len(SERVER_ERROR_BODY))
        await observer.write_header(500)
        await observer.write(SERVER_ERROR_BODY, more_body=False)
        logger.debug("Sent 500 for unhandled exception")
