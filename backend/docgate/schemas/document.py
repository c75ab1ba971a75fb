"""
DocGate — Pydantic Request/Response Schemas
============================================

What:  Models describing the API contract; FastAPI uses them to validate
       request bodies, serialize responses and generate /openapi.json.

Documents are schema-less. A document is modelled as a mapping from field
name to a JSON value (`pydantic.JsonValue`: str, int, float, bool, None,
list or dict of the same), never as an arbitrary Python object.
"""

from typing import Dict, List

from pydantic import BaseModel, Field, JsonValue

JsonDocument = Dict[str, JsonValue]


class DocumentListResponse(BaseModel):
    """
    What:  Page of documents returned by GET /{collection}.

    count is the size of this page; total is how many documents match the
    filter regardless of _limit/_skip.
    """
    collection: str = Field(description="Collection name from the path")
    count: int = Field(description="Number of documents in this response")
    total: int = Field(description="Number of documents matching the filter")
    data: List[JsonDocument] = Field(description="The documents")


class DeleteResponse(BaseModel):
    message: str = Field(default="Document deleted successfully")
    deleted: JsonDocument = Field(description="The document as it was before removal")


class DeleteAllResponse(BaseModel):
    message: str = Field(default="All documents deleted successfully")
    deletedCount: int = Field(description="How many documents were removed")


class CollectionListResponse(BaseModel):
    count: int = Field(description="Number of collections")
    collections: List[str] = Field(description="Collection names, excluding system collections")


class ErrorResponse(BaseModel):
    """
    What:  Error body shared by every failing response.

    Example:
        {"error": "Invalid collection name"}
    """
    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    """Health check response for monitoring and load balancer checks."""
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="MongoDB connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
