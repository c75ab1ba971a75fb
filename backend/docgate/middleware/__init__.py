# Middleware package init
"""
DocGate — Request Governance Middleware
========================================

What:  Cross-cutting policies applied to every request before routing.

Middleware Chain (outermost first):
    Request
      → [Access Log]          X-Request-ID, one line per request naming the
                              collection and any 413 or 429 rejection
      → [Security Headers]    CSP and hardening headers
      → [CORS]                public API, all origins
      → [Body Size Limit]     413 for bodies over 10 KB, before parsing
      → [Sanitize]            strip `$`-prefixed and dotted keys
      → [Parameter Pollution] repeated query keys collapse to the last value
      → [GZip]                response compression
      → [Global Rate Limit]   per-IP fixed window
      → Route Handler (+ write rate limit dependency on mutating routes)

Starlette runs middleware in reverse order of `add_middleware`, so main.py
adds them innermost first.
"""
