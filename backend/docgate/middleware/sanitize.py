"""
DocGate — Operator Injection Sanitizer
=======================================

What:  Removes MongoDB operator injection vectors from user input before any
       handler sees it.
How:   Pure ASGI middleware rewriting two parts of the request:
       - JSON bodies: every object key (at any depth, including objects
         inside arrays) that starts with `$` or contains `.` is dropped.
       - Query string: keys that start with `$` or contain `.` are dropped.

Attack prevented:
    POST /users  {"name": "x", "$where": "sleep(1000)"}
    PATCH /users/<id>  {"role.$": "admin"}
    GET /users?$where=1
    Without this, such keys would reach `$set` updates or query filters as
    operators instead of data.

Bodies that are not JSON, or JSON that fails to parse, pass through
untouched; the route's body validation rejects malformed JSON with 400.
"""

import json
import logging
from typing import Any, List, Tuple
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

OPERATOR_PREFIX = "$"
NESTING_DELIMITER = "."


def is_unsafe_key(key: str) -> bool:
    return key.startswith(OPERATOR_PREFIX) or NESTING_DELIMITER in key


def sanitize_value(value: Any, removed: List[str]) -> Any:
    """
    Return a copy of `value` with unsafe keys removed at every depth.

    Args:
        value:   Parsed JSON value
        removed: Collects the keys that were dropped (for logging)
    """
    if isinstance(value, dict):
        clean = {}
        for key, item in value.items():
            if is_unsafe_key(key):
                removed.append(key)
                continue
            clean[key] = sanitize_value(item, removed)
        return clean
    if isinstance(value, list):
        return [sanitize_value(item, removed) for item in value]
    return value


def sanitize_query_pairs(pairs: List[Tuple[str, str]], removed: List[str]) -> List[Tuple[str, str]]:
    clean = []
    for key, value in pairs:
        if is_unsafe_key(key):
            removed.append(key)
        else:
            clean.append((key, value))
    return clean


def _is_json(scope: Scope) -> bool:
    for name, value in scope.get("headers", []):
        if name == b"content-type":
            media_type = value.decode("latin-1").split(";")[0].strip().lower()
            return media_type == "application/json" or media_type.endswith("+json")
    return False


class SanitizeMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        removed: List[str] = []

        # ── Query string (latin-1 keeps the incoming bytes) ────────────────
        raw_query = scope.get("query_string", b"")
        if raw_query:
            pairs = parse_qsl(
                raw_query.decode("latin-1"), keep_blank_values=True, encoding="latin-1"
            )
            clean_pairs = sanitize_query_pairs(pairs, removed)
            if len(clean_pairs) != len(pairs):
                scope["query_string"] = urlencode(clean_pairs, encoding="latin-1").encode("latin-1")

        # ── JSON body ─────────────────────────────────────────────────────
        if not _is_json(scope):
            if removed:
                self._log(scope, removed)
            await self.app(scope, receive, send)
            return

        body = await _read_body(receive)
        body_removed: List[str] = []
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        else:
            if payload is not None:
                clean = sanitize_value(payload, body_removed)
                if body_removed:
                    body = json.dumps(clean, separators=(",", ":")).encode("utf-8")
                    scope["headers"] = [
                        (name, value)
                        for name, value in scope.get("headers", [])
                        if name != b"content-length"
                    ] + [(b"content-length", str(len(body)).encode("latin-1"))]

        removed.extend(body_removed)
        if removed:
            self._log(scope, removed)

        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    @staticmethod
    def _log(scope: Scope, removed: List[str]) -> None:
        client = scope.get("client")
        logger.warning(
            "Sanitized %s %s from %s: removed keys %s",
            scope.get("method"),
            scope.get("path"),
            client[0] if client else "unknown",
            sorted(set(removed)),
        )


async def _read_body(receive: Receive) -> bytes:
    chunks = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)
