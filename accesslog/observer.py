"""
accesslog: Response Observer
==============================

What:  Wraps a response writer and records the status code and body size
       that actually went out.
How:   Every call goes through to the wrapped writer unchanged. The observer
       only notes what was written. It does not buffer and does not change
       the bytes sent.

Status rules:
    - status 0 means "nothing written yet"
    - the first write() with no prior write_header() implies 200
    - write_header() always records the code it was given, even after
      an implied 200 (sending a second status line is the caller's bug,
      not something this wrapper prevents)
    - reading `status` before anything was written fixes it to 200
      (handler returned without writing a body)

Writers:
    Anything with header(), write_header() and write() can be wrapped, see
    ResponseWriter. ASGIResponseWriter adapts a raw ASGI `send` callable.
    flush() is optional and looked up when it is called, so writers that
    cannot flush need not pretend to.
"""

from http import HTTPStatus
from typing import Any, Dict, MutableMapping, Optional, Protocol

from starlette.datastructures import MutableHeaders
from starlette.types import Send

from accesslog.exceptions import FlushNotSupportedError, InvalidStatusCodeError


class ResponseWriter(Protocol):
    """The writing surface the observer wraps."""

    def header(self) -> MutableMapping[str, str]:
        ...

    async def write_header(self, status_code: int) -> None:
        ...

    async def write(self, data: bytes, more_body: bool = True) -> int:
        ...


class ASGIResponseWriter:
    """
    ResponseWriter over an ASGI `send` callable.

    write_header() sends `http.response.start` with whatever is in header()
    at that moment; write() sends `http.response.body`. Writing a body before
    any status sends a 200 start first. Header changes made after the start
    message went out are not sent.

    Keys the app put on its own start message beyond status and headers
    (`trailers`, for one) go into `start_fields` and are sent along.

    ASGI has no flush message, so this writer has no flush().
    """

    def __init__(self, send: Send):
        self._send = send
        self._headers = MutableHeaders()
        self._started = False
        self.start_fields: Dict[str, Any] = {}

    @property
    def started(self) -> bool:
        return self._started

    def header(self) -> MutableHeaders:
        return self._headers

    async def write_header(self, status_code: int) -> None:
        await self._send(
            {
                **self.start_fields,
                "type": "http.response.start",
                "status": status_code,
                "headers": self._headers.raw,
            }
        )
        self._started = True

    async def write(self, data: bytes, more_body: bool = True) -> int:
        if not self._started:
            await self.write_header(HTTPStatus.OK.value)
        await self._send(
            {"type": "http.response.body", "body": data, "more_body": more_body}
        )
        return len(data)


class ResponseObserver:
    """
    Response writer wrapper that tracks the status code and body size.

    Usage:
        observer = ResponseObserver(ASGIResponseWriter(send))
        await observer.write_header(404)
        await observer.write(b"not found", more_body=False)
        observer.status  # 404
        observer.size    # 9
    """

    def __init__(self, writer: ResponseWriter):
        self._writer = writer
        self._status = 0
        self._size = 0

    @property
    def writer(self) -> ResponseWriter:
        return self._writer

    @property
    def wrote_header(self) -> bool:
        """True once a status is known, without defaulting it."""
        return self._status != 0

    def header(self) -> MutableMapping[str, str]:
        return self._writer.header()

    async def flush(self) -> None:
        """
        Flush the wrapped writer.

        Raises:
            FlushNotSupportedError: The wrapped writer has no flush().
        """
        flush = getattr(self._writer, "flush", None)
        if not callable(flush):
            raise FlushNotSupportedError(type(self._writer).__name__)
        await flush()

    async def write(self, data: bytes, more_body: bool = True) -> int:
        """
        Write body bytes and add them to the running size.

        Whatever the wrapped writer raises is re-raised unchanged. If it
        reports a partial write (OSError.characters_written, as set by
        BlockingIOError) those bytes still count.
        """
        if self._status == 0:
            self._status = HTTPStatus.OK.value
        try:
            written = await self._writer.write(data, more_body)
        except OSError as exc:
            self._size += getattr(exc, "characters_written", 0)
            raise
        self._size += written
        return written

    async def write_header(self, status_code: int) -> None:
        if not 100 <= status_code <= 599:
            raise InvalidStatusCodeError(status_code)
        await self._writer.write_header(status_code)
        self._status = status_code

    @property
    def status(self) -> int:
        if self._status == 0:
            # Handler returned without writing anything
            self._status = HTTPStatus.OK.value
        return self._status

    @property
    def size(self) -> int:
        return self._size

    def __repr__(self) -> str:
        status: Optional[int] = self._status or None
        return f"<ResponseObserver status={status} size={self._size}>"
