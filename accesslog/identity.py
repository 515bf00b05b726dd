"""
accesslog: Caller Identity
============================

Resolves the username shown in the `%u` slot of an access line.

Precedence:
    1. userinfo in the URL        http://bob@host/        → "bob"
    2. `u` query parameter        /?u=carol               → "carol" (overrides 1)
    3. Basic Authorization header Basic ZGF2ZTpwdw==      → "dave"  (only if 1 and 2 are empty)
"""

from typing import Iterable
from urllib.parse import unquote

from starlette.datastructures import URL, QueryParams

from accesslog.request import RequestInfo


def first_non_empty(values: Iterable[str]) -> str:
    """Return the first non-empty string in `values`, or ""."""
    for value in values:
        if value:
            return value
    return ""


def resolve_username(request: RequestInfo, url: URL, username_param: str = "u") -> str:
    """
    Find the caller's username, or "" if the request does not name one.

    `url` is passed separately so callers can hand in the redacted URL.
    """
    username = ""

    if url.username:
        username = unquote(url.username)

    values = QueryParams(url.query).getlist(username_param)
    if values and values[0]:
        username = values[0]

    if not username:
        credentials = request.basic_auth()
        if credentials is not None:
            username = credentials[0]

    return username
