# Services package init
"""
DocGate — Services Layer
=========================

Service Inventory:
    - validators:        collection name, document id and body guards
    - query_builder:     query string → MongoDB filter + QueryOptions
    - registry:          memoized CollectionHandle per collection name
    - document_service:  CRUD orchestration with per-call store deadlines
"""
