"""
DocGate — Request Validators
=============================

What:  Guards applied before any store access: collection names, document
       ids and request bodies.
Who:   Called by DocumentService at the top of every operation.

Collection names are restricted to `[A-Za-z0-9_-]{1,50}`. That keeps path
traversal sequences, operator sigils and MongoDB's reserved characters
(`.`, `$`, NUL) out of collection identifiers.
"""

import re
from typing import Any, Mapping, Optional

from bson import ObjectId

from docgate.exceptions import ValidationError

COLLECTION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,50}$")


def is_valid_collection_name(name: str) -> bool:
    """True iff `name` is 1-50 characters of letters, digits, `_` or `-`."""
    return COLLECTION_NAME_PATTERN.fullmatch(name) is not None


def require_collection_name(name: str) -> str:
    """Returns `name` unchanged or raises ValidationError (400)."""
    if not is_valid_collection_name(name):
        raise ValidationError(
            message="Invalid collection name",
            field="collection",
            context={"value": name[:100]},
        )
    return name


def require_document_id(value: str) -> ObjectId:
    """
    Parses a path id into an ObjectId.

    Raises:
        ValidationError: `value` is not a 24-character hex ObjectId (400)
    """
    if not ObjectId.is_valid(value):
        raise ValidationError(
            message="Invalid document ID",
            field="id",
            context={"value": value[:100]},
        )
    return ObjectId(value)


def require_body(body: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Rejects a missing or empty JSON object."""
    if not body:
        raise ValidationError(message="Request body cannot be empty", field="body")
    return body
