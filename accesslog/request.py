"""
accesslog: Request Representation
===================================

What:  An immutable snapshot of the request fields the access log reads.
How:   RequestInfo.from_scope() builds one from an ASGI scope; tests and
       non-ASGI callers can construct it directly from a URL string.

Also holds the two small parsers the record pipeline needs:
    split_host_port()   "192.0.2.1:8080" → ("192.0.2.1", "8080")
    parse_basic_auth()  "Basic Ym9iOnB3" → ("bob", "pw")
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union
from urllib.parse import quote

from starlette.datastructures import URL, Headers
from starlette.types import Scope

from accesslog.exceptions import AddressSplitError

# Characters left as-is when escaping a path or query for the request line
PATH_SAFE = "/$&+,:;=@"
QUERY_SAFE = "/?:@!$&'()*+,;=%"


def split_host_port(address: str) -> Tuple[str, str]:
    """
    Split "host:port", "[ipv6]:port" or "[ipv6%zone]:port" into host and port.

    Raises:
        AddressSplitError: missing port, too many colons, bad brackets.
    """
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise AddressSplitError(address, "missing ']' in address")
        rest = address[end + 1:]
        if not rest:
            raise AddressSplitError(address, "missing port in address")
        if not rest.startswith(":"):
            raise AddressSplitError(address, "unexpected text after ']'")
        host = address[1:end]
        port = rest[1:]
        if "[" in host:
            raise AddressSplitError(address, "unexpected '[' in address")
        if ":" in port:
            raise AddressSplitError(address, "too many colons in address")
    else:
        colon = address.rfind(":")
        if colon < 0:
            raise AddressSplitError(address, "missing port in address")
        host = address[:colon]
        port = address[colon + 1:]
        if ":" in host:
            raise AddressSplitError(address, "too many colons in address")
        if "[" in host or "]" in host:
            raise AddressSplitError(address, "unexpected bracket in address")
    if "[" in port or "]" in port:
        raise AddressSplitError(address, "unexpected bracket in port")
    return host, port


def escaped_path(scope: Scope) -> str:
    """The request path in escaped form, preferring the bytes the client sent."""
    raw_path = scope.get("raw_path")
    if raw_path:
        # Some clients put the query string in raw_path as well
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
        return quote(path, safe=PATH_SAFE + "%", encoding="latin-1")
    root_path = scope.get("root_path", "")
    path = scope["path"]
    if not path.startswith(root_path):
        path = root_path + path
    return quote(path, safe=PATH_SAFE)


def escape_query(query: str) -> str:
    """Escape anything in a raw query that may not appear on a request line."""
    return quote(query, safe=QUERY_SAFE, encoding="latin-1")


def join_host_port(host: str, port: Union[int, str]) -> str:
    """Inverse of split_host_port(); IPv6 hosts get brackets."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def parse_basic_auth(authorization: str) -> Optional[Tuple[str, str]]:
    """
    Extract (username, password) from an HTTP Basic Authorization value.

    Returns None unless the value is "Basic <base64 of user:pass>" with the
    scheme matched case-insensitively and the payload containing a colon.
    Payloads that are not UTF-8 are decoded byte for byte as latin-1.
    """
    prefix = "basic "
    if len(authorization) < len(prefix) or authorization[:len(prefix)].lower() != prefix:
        return None
    try:
        payload = base64.b64decode(authorization[len(prefix):], validate=True)
    except binascii.Error:
        return None
    try:
        decoded = payload.decode("utf-8")
    except UnicodeDecodeError:
        decoded = payload.decode("latin-1")
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


@dataclass(frozen=True)
class RequestInfo:
    """
    The parts of an HTTP request that end up in an access record.

    Attributes:
        method:       "GET", "POST", ...
        url:          Full request URL; may carry userinfo ("http://bob@host/")
        proto:        Protocol string, e.g. "HTTP/1.1"
        remote_addr:  Peer address as "host:port" (or whatever the server gave)
        headers:      Request headers (case-insensitive lookup)
    """

    method: str
    url: URL
    proto: str = "HTTP/1.1"
    remote_addr: str = ""
    headers: Headers = field(default_factory=Headers)

    @classmethod
    def build(
        cls,
        method: str,
        url: str,
        proto: str = "HTTP/1.1",
        remote_addr: str = "",
        headers: Optional[dict] = None,
    ) -> "RequestInfo":
        return cls(
            method=method,
            url=URL(url),
            proto=proto,
            remote_addr=remote_addr,
            headers=Headers(headers or {}),
        )

    @classmethod
    def from_scope(cls, scope: Scope) -> "RequestInfo":
        """
        Snapshot an ASGI HTTP scope.

        The URL keeps the path as it was escaped on the wire (`raw_path`), so
        "%20", "%2F" and "%22" stay escaped in the logged URI. Servers that
        give no `raw_path` get the decoded path escaped again.
        """
        client = scope.get("client")
        remote_addr = join_host_port(client[0], client[1]) if client else ""
        wire_scope = {
            **scope,
            "root_path": "",
            "path": escaped_path(scope),
            "query_string": escape_query(scope.get("query_string", b"").decode("latin-1")).encode(),
        }
        return cls(
            method=scope["method"],
            url=URL(scope=wire_scope),
            proto=f"HTTP/{scope.get('http_version', '1.1')}",
            remote_addr=remote_addr,
            headers=Headers(scope=scope),
        )

    @property
    def referrer(self) -> str:
        return self.headers.get("referer", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def basic_auth(self) -> Optional[Tuple[str, str]]:
        authorization = self.headers.get("authorization")
        if authorization is None:
            return None
        return parse_basic_auth(authorization)


def request_uri(url: URL) -> str:
    """Path plus "?query" as it appears on the request line."""
    uri = url.path or "/"
    if url.query:
        uri = f"{uri}?{url.query}"
    return uri
