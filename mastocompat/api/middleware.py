from __future__ import annotations

import logging
import re
import time
from typing import Callable, FrozenSet
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("mastocompat.api")

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")

# Health probes hit every few seconds; keep them out of the INFO stream.
PROBE_PATHS: FrozenSet[str] = frozenset({"/livez", "/readyz"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id and echo it in X-Request-Id.

    Security notes:
    - A client id is reused only when it is short and made of URL-safe
      characters; anything else is replaced so it cannot forge log lines.

    """

    def __init__(self, app, *, header_name: str = "X-Request-Id", max_len: int = 128):
        super().__init__(app)
        self._header = header_name
        self._max_len = max_len

    def _accept(self, supplied: str | None) -> bool:
        return bool(supplied) and len(supplied) <= self._max_len and bool(_SAFE_ID_RE.match(supplied))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        supplied = request.headers.get(self._header)
        request_id = supplied if self._accept(supplied) else uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[self._header] = request_id
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One ``api_request`` line per request.

    Query strings stay out of the log: they carry pagination cursors and
    account ids. Server errors log at WARNING, probes at DEBUG.

    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            if status_code >= 500:
                level = logging.WARNING
            elif request.url.path in PROBE_PATHS:
                level = logging.DEBUG
            else:
                level = logging.INFO
            state = request.state
            log.log(
                level,
                "api_request",
                extra={
                    "request_id": getattr(state, "request_id", None),
                    "user_id": getattr(state, "user_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "duration_ms": round((time.monotonic() - started) * 1000),
                },
            )
