"""
DocGate — Access Log Middleware
================================

What:  One access line per request on the `docgate.access` logger, naming the
       collection and document a request targeted and which governance layer
       (if any) turned it away.
How:   Pure ASGI wrapper. The status code is read off `http.response.start`,
       where the correlation ID is also attached as `X-Request-ID`.
When:  Outermost middleware, so rejections from every later layer (413 from
       the body limit, 429 from either rate limiter) are logged too.

Line format:
    GET users/665f1c2e9b1e8a3f4c2d1a0b 200 3.1ms [a1b2c3d4] from 10.0.0.7
    POST orders 429 0.4ms [e5f6a7b8] from 10.0.0.7 rejected=rate-limit

Log level by status:
    5xx → ERROR, 4xx → WARNING, else INFO

Not logged: request bodies and query strings (documents may hold PII).
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Dict, Optional, Tuple

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("docgate.access")

# Correlation ID of the request being served; read by the exception handlers
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"

SKIPPED_PATHS = frozenset({"/health.json"})

GOVERNANCE_REJECTIONS: Dict[int, str] = {
    413: "body-limit",
    429: "rate-limit",
}


def describe_target(path: str) -> Tuple[str, Optional[str]]:
    """
    Split a request path into (collection, document_id).

    "/"            → ("/", None)
    "/users"       → ("users", None)
    "/users/abc"   → ("users", "abc")
    """
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return "/", None
    document_id = segments[1] if len(segments) > 1 else None
    return segments[0], document_id


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class AccessLogMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        rid = Headers(scope=scope).get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        token = request_id_var.set(rid)

        start = time.perf_counter()
        status = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = rid
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            path = scope.get("path", "")
            if path not in SKIPPED_PATHS:
                self._log(scope, path, status, (time.perf_counter() - start) * 1000, rid)
            request_id_var.reset(token)

    @staticmethod
    def _log(scope: Scope, path: str, status: int, duration_ms: float, rid: str) -> None:
        collection, document_id = describe_target(path)
        target = f"{collection}/{document_id}" if document_id else collection
        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        rejected = GOVERNANCE_REJECTIONS.get(status)

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] from %s%s",
            scope.get("method"),
            target,
            status,
            duration_ms,
            rid,
            client_ip,
            f" rejected={rejected}" if rejected else "",
            extra={
                "request_id": rid,
                "collection": collection,
                "document_id": document_id,
                "status": status,
                "rejected_by": rejected,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
