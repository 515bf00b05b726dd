"""
accesslog: HTTP Access Logging Shim
=====================================

What:  Common-log-format access records for ASGI apps.
How:   A ResponseObserver wraps the response writer to catch the status and
       body size. LogRecordBuilder then turns the request, the observer and
       the elapsed time into one redacted record for a DiagnosticSink.

    ┌──────────────┐   send   ┌──────────────────┐   record   ┌────────┐
    │  ASGI app    │ ───────→ │ ResponseObserver │ ─────────→ │  Sink  │
    └──────────────┘          └──────────────────┘  (builder) └────────┘
"""

__version__ = "1.0.0"

from accesslog.builder import LogRecordBuilder, RequestClock
from accesslog.identity import first_non_empty, resolve_username
from accesslog.observer import ASGIResponseWriter, ResponseObserver, ResponseWriter
from accesslog.records import AccessRecord, ErrorRecord
from accesslog.redaction import redact_query
from accesslog.request import RequestInfo, parse_basic_auth, split_host_port
from accesslog.sinks import DiagnosticSink, LoggingSink, MemorySink, format_common

__all__ = [
    "__version__",
    "AccessRecord",
    "ASGIResponseWriter",
    "DiagnosticSink",
    "ErrorRecord",
    "LoggingSink",
    "LogRecordBuilder",
    "MemorySink",
    "RequestClock",
    "RequestInfo",
    "ResponseObserver",
    "ResponseWriter",
    "first_non_empty",
    "format_common",
    "parse_basic_auth",
    "redact_query",
    "resolve_username",
    "split_host_port",
]
