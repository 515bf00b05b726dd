"""
accesslog: Diagnostic Sinks
=============================

What:  Where finished records go.
How:   A sink has two methods, emit_access() and emit_error(). The builder
       calls exactly one of them per request and ignores the return value.

Sinks:
    LoggingSink  writes one line per record through a stdlib logger
    MemorySink   keeps records in lists (tests, embedding)

Common line format (Apache mod_log_config terms):
    %h %l %u %t "%r" %>s %b "%{Referer}i" "%{User-agent}i" %{Request-Id}i %D

    192.0.2.1 - alice [15/Jan/2024:12:00:00 +0000] "GET /notes?p=%5BREDACTED%5D HTTP/1.1" 200 512 "-" "curl/8.0" req-1 1532

Error lines put the tag and detail in front:
    encountered error: ValueError: boom 192.0.2.1 - - [...] "GET / HTTP/1.1" 500 21 "-" "-"  87
"""

import logging
from typing import List, Optional, Protocol, Union

from accesslog.config import AccessLogSettings
from accesslog.config import settings as default_settings
from accesslog.records import AccessRecord, ErrorRecord

CLF_TIME_FORMAT = "%d/%b/%Y:%H:%M:%S %z"


class DiagnosticSink(Protocol):
    def emit_access(self, record: AccessRecord) -> None:
        ...

    def emit_error(self, record: ErrorRecord) -> None:
        ...


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def format_common(record: AccessRecord) -> str:
    """Render a record as a common-log-format line (see module docstring)."""
    line = (
        f'{record.host} - {record.user} [{record.start_time.strftime(CLF_TIME_FORMAT)}] '
        f'"{record.method} {record.uri} {record.proto}" '
        f'{record.status} {record.size or "-"} '
        f'"{_quote(record.referrer)}" "{_quote(record.user_agent)}" '
        f'{record.request_id} {record.elapsed_us}'
    )
    if isinstance(record, ErrorRecord):
        line = f"{record.tag}: {record.detail} {line}"
    return line


class LoggingSink:
    """
    Sink that writes each record through a `logging.Logger`.

    Access records log at INFO and error records at ERROR. The record's
    fields also go into `extra`, so a JSON formatter on the handler can pick
    them up individually.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        settings: Optional[AccessLogSettings] = None,
    ):
        self.settings = settings or default_settings
        self.logger = logger or logging.getLogger(self.settings.logger_name)

    def format(self, record: AccessRecord) -> str:
        if self.settings.log_format == "json":
            return record.model_dump_json()
        return format_common(record)

    def _emit(self, level: int, record: AccessRecord) -> None:
        self.logger.log(
            level,
            "%s",
            self.format(record),
            extra=record.model_dump(mode="json"),
        )

    def emit_access(self, record: AccessRecord) -> None:
        self._emit(logging.INFO, record)

    def emit_error(self, record: ErrorRecord) -> None:
        self._emit(logging.ERROR, record)


class MemorySink:
    """Sink that keeps every record it is given."""

    def __init__(self) -> None:
        self.access: List[AccessRecord] = []
        self.errors: List[ErrorRecord] = []

    @property
    def records(self) -> List[Union[AccessRecord, ErrorRecord]]:
        return [*self.access, *self.errors]

    def emit_access(self, record: AccessRecord) -> None:
        self.access.append(record)

    def emit_error(self, record: ErrorRecord) -> None:
        self.errors.append(record)
