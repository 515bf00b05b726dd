"""
accesslog: Log Record Builder
===============================

What:  Turns a finished request/response pair into one access record and
       hands it to a sink.
How:   A fixed pipeline, identical for normal and error records:

    1. redact    sensitive query values → new URL used from here on
    2. identity  userinfo < `u` param, Basic auth as last resort
    3. host      remote address minus port (raw address if it won't split)
    4. fields    URI, referrer, user agent, method, proto, Request-Id
    5. defaults  "-" for empty username / referrer / user agent only
    6. elapsed   monotonic time since the RequestClock started
    7. emit      exactly one sink call

Usage:
    clock = RequestClock.start()
    ...handler writes through `observer`...
    builder.log_access(sink, request, observer, clock)
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from accesslog.config import AccessLogSettings
from accesslog.config import settings as default_settings
from accesslog.exceptions import AddressSplitError
from accesslog.identity import first_non_empty, resolve_username
from accesslog.observer import ResponseObserver
from accesslog.records import AccessRecord, ErrorRecord
from accesslog.redaction import redact_query
from accesslog.request import RequestInfo, request_uri, split_host_port
from accesslog.sinks import DiagnosticSink


@dataclass(frozen=True)
class RequestClock:
    """
    Start of a request: the wall-clock time that gets logged, and a
    perf_counter reading that elapsed time is measured from.
    """

    started_at: datetime
    _started_mono: float

    @classmethod
    def start(cls) -> "RequestClock":
        return cls(datetime.now(timezone.utc), time.perf_counter())

    def elapsed(self) -> timedelta:
        return timedelta(seconds=time.perf_counter() - self._started_mono)


class LogRecordBuilder:
    """
    Builds access and error records.

    Stateless apart from its settings, so one instance is shared by every
    request.
    """

    def __init__(self, settings: Optional[AccessLogSettings] = None):
        self.settings = settings or default_settings

    def resolve_host(self, remote_addr: str) -> str:
        try:
            host, _ = split_host_port(remote_addr)
        except AddressSplitError:
            return remote_addr
        return host

    def _fields(
        self,
        request: RequestInfo,
        observer: ResponseObserver,
        clock: RequestClock,
    ) -> Dict[str, Any]:
        s = self.settings
        url = redact_query(request.url, s.redacted_params, s.redaction_marker)
        username = resolve_username(request, url, s.username_param)
        return {
            "host": self.resolve_host(request.remote_addr),
            "user": first_non_empty([username, s.placeholder]),
            "start_time": clock.started_at,
            "method": request.method,
            "uri": request_uri(url),
            "proto": request.proto,
            "status": observer.status,
            "size": observer.size,
            "referrer": first_non_empty([request.referrer, s.placeholder]),
            "user_agent": first_non_empty([request.user_agent, s.placeholder]),
            "request_id": request.headers.get(s.request_id_header, ""),
            "elapsed": clock.elapsed(),
        }

    def build(
        self,
        request: RequestInfo,
        observer: ResponseObserver,
        clock: RequestClock,
    ) -> AccessRecord:
        return AccessRecord(**self._fields(request, observer, clock))

    def build_error(
        self,
        request: RequestInfo,
        observer: ResponseObserver,
        clock: RequestClock,
        detail: str,
    ) -> ErrorRecord:
        return ErrorRecord(
            tag=self.settings.error_tag,
            detail=detail,
            **self._fields(request, observer, clock),
        )

    def log_access(
        self,
        sink: DiagnosticSink,
        request: RequestInfo,
        observer: ResponseObserver,
        clock: RequestClock,
    ) -> AccessRecord:
        """Build the access record and emit it once."""
        record = self.build(request, observer, clock)
        sink.emit_access(record)
        return record

    def log_error(
        self,
        sink: DiagnosticSink,
        request: RequestInfo,
        observer: ResponseObserver,
        clock: RequestClock,
        detail: str,
    ) -> ErrorRecord:
        """Build the error record and emit it once."""
        record = self.build_error(request, observer, clock, detail)
        sink.emit_error(record)
        return record
