"""
DocGate — FastAPI Dependencies
===============================

What:  Accessors for the long-lived objects the application owns.
How:   create_app()/lifespan put them on `app.state`; route handlers receive
       them through Depends() instead of importing module-level singletons,
       so tests can swap in their own registry or service per app instance.
"""

from typing import Optional

from fastapi import Request
from pymongo import AsyncMongoClient

from docgate.services.document_service import DocumentService


def get_document_service(request: Request) -> DocumentService:
    return request.app.state.document_service


def get_mongo_client(request: Request) -> Optional[AsyncMongoClient]:
    return getattr(request.app.state, "mongo_client", None)
