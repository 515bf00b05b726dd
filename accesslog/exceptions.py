"""
accesslog: Exception Hierarchy
================================

What:  Errors raised by the response observer and the record pipeline.
How:   Each exception carries a message and an optional context dict,
       so callers can log the details without parsing the message.

Exception Hierarchy:
    AccessLogError (base)
    ├── FlushNotSupportedError   → wrapped writer cannot flush (fatal)
    ├── InvalidStatusCodeError   → status outside 100-599
    └── AddressSplitError        → remote address has no usable host:port

Only FlushNotSupportedError and InvalidStatusCodeError ever escape this
package. AddressSplitError is caught by the record builder, which falls back
to the raw remote address.
"""

from typing import Any, Dict, Optional


class AccessLogError(Exception):
    """
    Base exception for all access-log errors.

    Attributes:
        message:  Human-readable description
        context:  Additional debug info (e.g. the offending value)
    """

    def __init__(
        self,
        message: str = "Access logging failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class FlushNotSupportedError(AccessLogError):
    """
    Raised when flush() is called on an observer whose writer cannot flush.

    Flushing is an optional writer capability, checked when flush() is called
    rather than when the observer is built. Calling it on a writer without
    the capability means the collaborator was wired up wrong, so this is not
    recovered anywhere.
    """

    def __init__(
        self,
        writer_type: str = "writer",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["writer_type"] = writer_type
        super().__init__(
            message=f"{writer_type} does not support flushing",
            context=ctx,
        )
        self.writer_type = writer_type


class InvalidStatusCodeError(AccessLogError, ValueError):
    """Raised by write_header() for a status code outside 100-599."""

    def __init__(
        self,
        status_code: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["status_code"] = status_code
        super().__init__(
            message=f"Invalid HTTP status code {status_code!r}",
            context=ctx,
        )
        self.status_code = status_code


class AddressSplitError(AccessLogError, ValueError):
    """
    Raised by split_host_port() when an address cannot be split.

    When:    No port ("192.0.2.1"), too many colons ("::1"),
             unbalanced brackets ("[::1").
    """

    def __init__(
        self,
        address: str,
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["address"] = address
        ctx["reason"] = reason
        super().__init__(message=f"address {address}: {reason}", context=ctx)
        self.address = address
        self.reason = reason
