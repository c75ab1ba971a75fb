"""
DocGate — Document Route Handlers
==================================

What:  CRUD endpoints for any collection:
           GET    /{collection}         list (filter / sort / paginate / search)
           POST   /{collection}         create
           DELETE /{collection}         delete all
           GET    /{collection}/{id}    fetch one
           PUT    /{collection}/{id}    full replace
           PATCH  /{collection}/{id}    partial merge
           DELETE /{collection}/{id}    delete one
How:   Each handler passes path, query and body to DocumentService and
       returns its result. Mutating routes carry the write rate limit.

This router must be included last: its `/{collection}` pattern would
otherwise capture /collections and /health.json.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Request, status

from docgate.dependencies import get_document_service
from docgate.middleware.rate_limit import enforce_write_limit
from docgate.schemas.document import (
    DeleteAllResponse,
    DeleteResponse,
    DocumentListResponse,
    ErrorResponse,
    JsonDocument,
)
from docgate.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])

_ERRORS = {
    400: {"description": "Invalid collection name, document ID or body", "model": ErrorResponse},
    500: {"description": "Store error (message passed through)", "model": ErrorResponse},
}
_ERRORS_WITH_404 = {**_ERRORS, 404: {"description": "Document not found", "model": ErrorResponse}}
_WRITE_ERRORS = {**_ERRORS, 429: {"description": "Write rate limit exceeded", "model": ErrorResponse}}
_WRITE_ERRORS_WITH_404 = {**_ERRORS_WITH_404, 429: _WRITE_ERRORS[429]}


@router.get(
    "/{collection}",
    response_model=DocumentListResponse,
    responses=_ERRORS,
    summary="List documents in a collection",
    description=(
        "Query parameters: _limit (max 1000, default 100), _skip/_offset, "
        "_sort (prefix with - for descending), _search (full-text), "
        "<field>=v (exact match), <field>_gte, <field>_lte, <field>_ne."
    ),
)
async def list_documents(
    collection: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
) -> DocumentListResponse:
    result = await service.list_documents(collection, dict(request.query_params))
    return DocumentListResponse(**result)


@router.get(
    "/{collection}/{document_id}",
    response_model=JsonDocument,
    responses=_ERRORS_WITH_404,
    summary="Fetch one document by ID",
)
async def get_document(
    collection: str,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
) -> JsonDocument:
    return await service.get_document(collection, document_id)


@router.post(
    "/{collection}",
    status_code=status.HTTP_201_CREATED,
    response_model=JsonDocument,
    responses=_WRITE_ERRORS,
    dependencies=[Depends(enforce_write_limit)],
    summary="Create a document",
)
async def create_document(
    collection: str,
    payload: Optional[JsonDocument] = Body(default=None),
    service: DocumentService = Depends(get_document_service),
) -> JsonDocument:
    return await service.create_document(collection, payload)


@router.put(
    "/{collection}/{document_id}",
    response_model=JsonDocument,
    responses=_WRITE_ERRORS_WITH_404,
    dependencies=[Depends(enforce_write_limit)],
    summary="Replace a document",
    description="The body becomes the whole document; _id and createdAt are kept.",
)
async def replace_document(
    collection: str,
    document_id: str,
    payload: Optional[JsonDocument] = Body(default=None),
    service: DocumentService = Depends(get_document_service),
) -> JsonDocument:
    return await service.replace_document(collection, document_id, payload)


@router.patch(
    "/{collection}/{document_id}",
    response_model=JsonDocument,
    responses=_WRITE_ERRORS_WITH_404,
    dependencies=[Depends(enforce_write_limit)],
    summary="Merge fields into a document",
    description="Only the fields present in the body change.",
)
async def merge_document(
    collection: str,
    document_id: str,
    payload: Optional[JsonDocument] = Body(default=None),
    service: DocumentService = Depends(get_document_service),
) -> JsonDocument:
    return await service.merge_document(collection, document_id, payload)


@router.delete(
    "/{collection}/{document_id}",
    response_model=DeleteResponse,
    responses=_WRITE_ERRORS_WITH_404,
    dependencies=[Depends(enforce_write_limit)],
    summary="Delete one document",
)
async def delete_document(
    collection: str,
    document_id: str,
    service: DocumentService = Depends(get_document_service),
) -> DeleteResponse:
    result = await service.delete_document(collection, document_id)
    return DeleteResponse(**result)


@router.delete(
    "/{collection}",
    response_model=DeleteAllResponse,
    responses=_WRITE_ERRORS,
    dependencies=[Depends(enforce_write_limit)],
    summary="Delete every document in a collection",
    description="The collection itself remains, with zero documents.",
)
async def delete_all_documents(
    collection: str,
    service: DocumentService = Depends(get_document_service),
) -> DeleteAllResponse:
    result = await service.delete_all_documents(collection)
    return DeleteAllResponse(**result)
