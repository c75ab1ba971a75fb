"""
DocGate — Custom Exception Hierarchy
=====================================

What:  Application-specific exceptions for each error scenario the API reports.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return `{"error": <message>}` with the matching HTTP status code.
Who:   Raised by services, validators and rate-limit dependencies.

Exception Hierarchy:
    DocGateError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── StoreError               → 500 Internal Server Error (store message verbatim)

The response body never carries the context dict; context is for the logs.
"""

from typing import Any, Dict, Optional


class DocGateError(Exception):
    """
    Base exception for all DocGate application errors.

    Attributes:
        message:     Text returned to the client in the `error` field
        context:     Additional debug info (logged, not returned)
        status_code: HTTP status the global handler responds with
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DocGateError):
    """
    Raised when client input fails validation.

    When:    Bad collection name, malformed document id, empty body.
    HTTP:    400 Bad Request
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(DocGateError):
    """
    Raised when a requested document does not exist.

    The store returns None for a missing document; services convert that into
    this exception so the route stays free of status-code logic.
    """

    status_code = 404

    def __init__(
        self,
        resource: str = "Document",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PayloadTooLargeError(DocGateError):
    """Raised when a request body exceeds the configured byte ceiling."""

    status_code = 413

    def __init__(
        self,
        max_bytes: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["max_bytes"] = max_bytes
        super().__init__(message="Request body too large", context=ctx)
        self.max_bytes = max_bytes


class RateLimitExceededError(DocGateError):
    """
    Raised when a client exceeds a per-IP rate limit.

    Response includes a Retry-After header with the seconds left in the
    current window.
    """

    status_code = 429

    def __init__(
        self,
        message: str = "Too many requests from this IP, please try again later.",
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class StoreError(DocGateError):
    """
    Raised when a MongoDB operation fails or exceeds its deadline.

    HTTP:    500 Internal Server Error

    The driver's message is passed through to the client unchanged, so API
    users see e.g. "text index required for $text query".
    """

    status_code = 500

    def __init__(
        self,
        message: str = "A database error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
