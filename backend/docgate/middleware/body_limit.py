"""
DocGate — Request Body Size Limit
==================================

What:  Rejects request bodies larger than `max_bytes` (default 10 KB) with
       413 before any parsing happens.
How:   Pure ASGI middleware:
       1. A declared Content-Length above the ceiling is rejected immediately.
       2. Otherwise the body is read from the receive channel while counting
          bytes (covers chunked uploads with no Content-Length); crossing the
          ceiling rejects the request.
       3. A body within the limit is replayed to the downstream app as a
          single `http.request` message.

Because the whole body is buffered here (at most max_bytes), the sanitizer
further down the chain can rewrite it without streaming concerns.
"""

import logging
from typing import Optional

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from docgate.exceptions import PayloadTooLargeError

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware:
    def __init__(self, app: ASGIApp, max_bytes: int = 10_240) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        declared = _content_length(scope)
        if declared is not None and declared > self.max_bytes:
            await self._reject(scope, receive, send, declared)
            return

        chunks = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                return
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_bytes:
                await self._reject(scope, receive, send, size)
                return
            chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        client = scope.get("client")
        logger.warning(
            "Rejected %s %s: body of %d bytes exceeds %d-byte limit (client %s)",
            scope.get("method"),
            scope.get("path"),
            size,
            self.max_bytes,
            client[0] if client else "unknown",
        )
        error = PayloadTooLargeError(self.max_bytes, context={"size": size})
        response = JSONResponse(status_code=error.status_code, content={"error": error.message})
        await response(scope, receive, send)


def _content_length(scope: Scope) -> Optional[int]:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None
