"""
DocGate — HTTP Parameter Pollution Guard
=========================================

What:  Collapses repeated query-string keys to a single value.
How:   `?status=open&status=closed` becomes `?status=closed`: the LAST
       occurrence wins and keeps the position of the first one. Route
       handlers and the query builder therefore always see one string per key.

Tie-break:
    Last-wins matches the common Express `hpp` behaviour and what a client
    overriding a default parameter by appending it would expect.
"""

import logging
from typing import Dict, List
from urllib.parse import parse_qsl, urlencode

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)


def collapse_duplicates(query_string: str) -> str:
    # latin-1 maps each byte to one code point, so percent-escaped UTF-8 and
    # raw non-ASCII bytes decode to the same bytes after the rewrite
    pairs = parse_qsl(query_string, keep_blank_values=True, encoding="latin-1")
    collapsed: Dict[str, str] = {}
    for key, value in pairs:
        collapsed[key] = value
    return urlencode(list(collapsed.items()), encoding="latin-1")


class ParameterPollutionMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http" or not scope.get("query_string"):
            await self.app(scope, receive, send)
            return

        query_string = scope["query_string"].decode("latin-1")
        keys: List[str] = [
            key for key, _ in parse_qsl(query_string, keep_blank_values=True, encoding="latin-1")
        ]
        if len(keys) != len(set(keys)):
            duplicated = sorted({key for key in keys if keys.count(key) > 1})
            logger.info("Collapsed repeated query parameters %s on %s", duplicated, scope.get("path"))
            scope = dict(scope)
            scope["query_string"] = collapse_duplicates(query_string).encode("latin-1")

        await self.app(scope, receive, send)
