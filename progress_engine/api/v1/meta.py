"""
Meta endpoints that expose API metadata such as the route list.
"""
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.routing import APIRoute

from progress_engine.core.config import settings

router = APIRouter()


@router.get("/meta/endpoints")
async def list_api_endpoints(
    request: Request,
    tag: Optional[str] = Query(default=None, description="Only list routes with this tag")
):
    """Return a sorted list of the versioned API endpoints."""
    routes = []
    seen = set()

    for route in request.app.routes:
        if not isinstance(route, APIRoute):
            continue

        if not route.path.startswith(settings.API_V1_PREFIX):
            continue

        if tag is not None and tag not in (route.tags or []):
            continue

        methods = sorted(m for m in route.methods if m not in {"HEAD", "OPTIONS"})
        if not methods:
            continue

        signature = (route.path, tuple(methods))
        if signature in seen:
            continue

        seen.add(signature)
        routes.append({
            "path": route.path,
            "methods": methods,
            "name": route.name,
            "summary": route.summary,
            "tags": route.tags,
            "response_model": getattr(route.response_model, "__name__", None),
        })

    routes.sort(key=lambda item: (item["path"], item["methods"]))
    return {
        "count": len(routes),
        "routes": routes,
    }
