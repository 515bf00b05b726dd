"""
accesslog: Query Redaction
============================

What:  Replaces sensitive query values (the `p` password parameter by
       default) with a fixed marker before any log field is derived.
How:   Returns a new URL with the rewritten query string; the original
       request is left alone. Every later field, the request URI included,
       is read from the returned URL.

Encoding:
    When anything is redacted the whole query is re-encoded with keys
    sorted and form escaping, so "/login?u=bob&p=hunter2" becomes
    "/login?p=%5BREDACTED%5D&u=bob". Queries with nothing to redact come
    back byte-for-byte unchanged.
"""

from operator import itemgetter
from typing import Iterable
from urllib.parse import urlencode

from starlette.datastructures import URL, QueryParams

REDACTED = "[REDACTED]"


def redact_query(url: URL, params: Iterable[str] = ("p",), marker: str = REDACTED) -> URL:
    """
    Return `url` with every non-empty sensitive parameter replaced by `marker`.

    A parameter counts as present when its first value is non-empty; all of
    its values are then collapsed into a single marker value.
    """
    query = QueryParams(url.query)
    sensitive = set()
    for name in params:
        values = query.getlist(name)
        if values and values[0]:
            sensitive.add(name)
    if not sensitive:
        return url

    items = [(k, v) for k, v in query.multi_items() if k not in sensitive]
    items.extend((name, marker) for name in sensitive)
    items.sort(key=itemgetter(0))
    return url.replace(query=urlencode(items))
