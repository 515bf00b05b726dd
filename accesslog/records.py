"""
accesslog: Log Record Schemas
===============================

What:  Immutable Pydantic models for the two record shapes handed to a sink.
Who:   Built by LogRecordBuilder, consumed by DiagnosticSink implementations.

Field order follows the access line:
    host, user, start_time, method, uri, proto, status, size,
    referrer, user_agent, request_id, elapsed

ErrorRecord adds `tag` and `detail`, which an error line prints first.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, Field


class AccessRecord(BaseModel):
    """One completed request."""

    host: str = Field(description="Client host, without port when one was given")
    user: str = Field(description="Resolved username, or the placeholder")
    start_time: datetime = Field(description="When the request started (UTC)")
    method: str = Field(description="HTTP method")
    uri: str = Field(description="Request URI after redaction")
    proto: str = Field(description="Protocol, e.g. HTTP/1.1")
    status: int = Field(ge=100, le=599, description="Response status code")
    size: int = Field(ge=0, description="Response body bytes written")
    referrer: str = Field(description="Referer header, or the placeholder")
    user_agent: str = Field(description="User-Agent header, or the placeholder")
    request_id: str = Field(description="Request-Id header verbatim, empty if absent")
    elapsed: timedelta = Field(description="Time from start to record construction")

    model_config = ConfigDict(frozen=True, ser_json_timedelta="float")

    @property
    def elapsed_us(self) -> int:
        """Latency in whole microseconds (Apache %D)."""
        return self.elapsed // timedelta(microseconds=1)


class ErrorRecord(AccessRecord):
    """A request that ended in a recovered error."""

    tag: str = Field(description="Fixed message tag, e.g. 'encountered error'")
    detail: str = Field(description="Error detail, passed through uninterpreted")
