"""
DocGate — Root Route (Dashboard or API Guide)
==============================================

What:  GET / serves the dashboard page to browsers and a JSON API guide to
       everything else.
How:   Content negotiation on the Accept header:
       - Accept lists text/html, no `json` query key, and
         <dashboard_dir>/index.html exists → the HTML file
       - otherwise → JSON guide (also reachable from a browser as /?json)
"""

from pathlib import Path
from typing import Any, Dict, Union

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

from docgate import __version__

router = APIRouter(tags=["Root"])

ENDPOINTS = {
    "health": "GET /health.json",
    "list_collections": "GET /collections",
    "get_all": "GET /:collection",
    "get_one": "GET /:collection/:id",
    "create": "POST /:collection",
    "update": "PUT /:collection/:id",
    "patch": "PATCH /:collection/:id",
    "delete": "DELETE /:collection/:id",
    "delete_all": "DELETE /:collection",
}

QUERY_PARAMS = {
    "_limit": "Limit results (max 1000, default 100)",
    "_skip": "Skip results for pagination",
    "_sort": "Sort by field (prefix with - for desc)",
    "_search": "Full-text search",
    "field_gte": "Greater than or equal",
    "field_lte": "Less than or equal",
    "field_ne": "Not equal",
    "field": "Exact match",
}


def wants_html(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "text/html" in accept.lower() and "json" not in request.query_params


def api_guide(request: Request) -> Dict[str, Any]:
    base_url = str(request.base_url).rstrip("/")
    return {
        "message": "Welcome to DocGate",
        "version": __version__,
        "dashboard": f"{base_url}/",
        "documentation": {
            "base_url": base_url,
            "endpoints": ENDPOINTS,
            "query_params": QUERY_PARAMS,
        },
    }


@router.get("/", response_model=None, summary="Dashboard (HTML) or API guide (JSON)")
async def root(request: Request) -> Union[FileResponse, JSONResponse]:
    index = Path(request.app.state.settings.dashboard_dir) / "index.html"
    if wants_html(request) and index.is_file():
        return FileResponse(index, media_type="text/html")
    return JSONResponse(api_guide(request))
