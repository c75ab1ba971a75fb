"""
DocGate — Query Builder
========================

What:  Translates a flat query-string mapping into a MongoDB filter plus
       pagination/sort options.
Who:   Called by DocumentService.list_documents for GET /{collection}.

Query Parameter Grammar:
    _limit=N            page size, clamped to [1, 1000], default 100
    _skip=N / _offset=N documents to skip, >= 0, default 0
    _sort=field         ascending sort; _sort=-field for descending
    _search=text        full-text search ($text) over the wildcard text index
    field_gte=v         field >= v   (merged with other range bounds)
    field_lte=v         field <= v   (merged with other range bounds)
    field_ne=v          field != v   (replaces any other constraint on field)
    field=v             exact match
    _anything_else      ignored

Values are compared as raw strings. `price_gte=10` matches documents whose
`price` is the *string* "10" or greater; a numeric `price` never matches.
No type inference happens here.

Example:
    >>> build_query({"status": "open", "price_gte": "5", "price_lte": "9", "_sort": "-price"})
    ({'status': 'open', 'price': {'$gte': '5', '$lte': '9'}},
     QueryOptions(limit=100, skip=0, sort={'price': -1}))
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from pymongo import ASCENDING, DESCENDING

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000
MIN_LIMIT = 1
DEFAULT_SORT_FIELD = "createdAt"

# Leading integer prefix, the way JavaScript's parseInt reads "12abc" as 12
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

# Suffix → (operator, merge with existing constraints?)
_RANGE_SUFFIXES = (
    ("_gte", "$gte", True),
    ("_lte", "$lte", True),
    ("_ne", "$ne", False),
)


@dataclass
class QueryOptions:
    """Pagination and ordering derived alongside the filter."""

    limit: int = DEFAULT_LIMIT
    skip: int = 0
    sort: Dict[str, int] = field(default_factory=lambda: {DEFAULT_SORT_FIELD: DESCENDING})


def parse_int(value: str) -> Optional[int]:
    """Integer prefix of `value`, or None when it does not start with digits."""
    match = _INT_PREFIX.match(value)
    return int(match.group(1)) if match else None


def build_query(params: Mapping[str, str]) -> Tuple[Dict[str, Any], QueryOptions]:
    """
    Build `(filter, options)` from request query parameters.

    Args:
        params: One value per key. Duplicate keys are collapsed upstream by
                ParameterPollutionMiddleware.

    Returns:
        filter:  MongoDB filter document
        options: QueryOptions with limit, skip and a single sort key
    """
    query: Dict[str, Any] = {}
    options = QueryOptions()

    for key, value in params.items():
        if key == "_limit":
            # 0 and non-numeric fall back to the default, like `parseInt(v) || 100`
            limit = parse_int(value) or DEFAULT_LIMIT
            options.limit = max(MIN_LIMIT, min(limit, MAX_LIMIT))
        elif key in ("_skip", "_offset"):
            options.skip = max(parse_int(value) or 0, 0)
        elif key == "_sort":
            direction = DESCENDING if value.startswith("-") else ASCENDING
            sort_field = value[1:] if value.startswith("-") else value
            if sort_field:
                options.sort = {sort_field: direction}
        elif key == "_search":
            query["$text"] = {"$search": value}
        elif key.endswith(("_gte", "_lte", "_ne")):
            _apply_operator(query, key, value)
        elif not key.startswith("_"):
            query[key] = value

    return query, options


def _apply_operator(query: Dict[str, Any], key: str, value: str) -> None:
    for suffix, operator, merge in _RANGE_SUFFIXES:
        if not key.endswith(suffix):
            continue
        target = key[: -len(suffix)]
        if not target:
            return
        existing = query.get(target)
        if merge and isinstance(existing, dict):
            query[target] = {**existing, operator: value}
        else:
            query[target] = {operator: value}
        return
