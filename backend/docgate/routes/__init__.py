# Routes package init
"""
DocGate — API Routes Package
=============================

Route Inventory:
    - root.py:         GET /                          (dashboard or JSON API guide)
    - health.py:       GET /health.json               (MongoDB connectivity)
    - collections.py:  GET /collections               (collection names)
    - documents.py:    GET|POST|DELETE /{collection}
                       GET|PUT|PATCH|DELETE /{collection}/{id}

Routes are thin: they pull path, query and body off the request, call
DocumentService and return its result. Validation and store access live in
the services layer.
"""
