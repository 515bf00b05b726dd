# Middleware package init
"""
accesslog: Middleware Package
===============================

What:  ASGI middleware that wires the observer and record builder into an app.

Placement:
    Add AccessLogMiddleware last so it runs first. It then times the whole
    request and sees the final status the client got:

    Request → [Access Log] → [other middleware] → Route Handler
"""

from accesslog.middleware.access_log import AccessLogMiddleware

__all__ = ["AccessLogMiddleware"]
