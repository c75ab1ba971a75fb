"""
DocGate — Application Package Initializer
==========================================

What: Marks the `docgate` directory as a Python package.
Who:  Used by uvicorn (`uvicorn docgate.main:app`), pytest and `python -m docgate`.

Architecture Note:

    ┌─────────────────────────────────────┐
    │   Middleware (Request Governance)   │  ← headers, size cap, sanitize, rate limit
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Services (Validation, Queries)    │  ← validator, registry, query builder
    ├─────────────────────────────────────┤
    │   Models (Collection Handles)       │  ← one adapter per MongoDB collection
    ├─────────────────────────────────────┤
    │        Database (MongoDB client)    │  ← async pymongo client lifecycle
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
