"""
DocGate — Collection Listing Route
===================================

What:  GET /collections returns the names of existing collections.
"""

import logging

from fastapi import APIRouter, Depends

from docgate.dependencies import get_document_service
from docgate.exceptions import StoreError
from docgate.schemas.document import CollectionListResponse, ErrorResponse
from docgate.services.document_service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Collections"])


@router.get(
    "/collections",
    response_model=CollectionListResponse,
    responses={500: {"description": "Store unavailable", "model": ErrorResponse}},
    summary="List collection names",
)
async def list_collections(
    service: DocumentService = Depends(get_document_service),
) -> CollectionListResponse:
    """
    Unlike the document routes, a store failure here is reported with a fixed
    message instead of the driver's text.
    """
    try:
        names = await service.list_collections()
    except StoreError as e:
        logger.error("Failed to list collections: %s", e.message)
        raise StoreError(message="Failed to fetch collections") from e

    return CollectionListResponse(count=len(names), collections=names)
