"""Search endpoint.

Routes
------
GET /search?q=<query>&max_results=10&skip_cache=false
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Query, Request

from scout.models import FetchOptions

router = APIRouter()


@router.get("")
def search(
    request: Request,
    q: str = Query(..., min_length=1),
    max_results: Optional[int] = Query(None, ge=1, le=50),
    skip_cache: bool = False,
) -> dict[str, Any]:
    """Query the configured search backends.

    Args:
        q: Search query string.
        max_results: Number of hits wanted; defaults to ``SEARCH_MAX_RESULTS``.
        skip_cache: Ignore a cached result for this query.
    """
    layer = request.app.state.layer
    result = layer.search(q, max_results=max_results, options=FetchOptions(skip_cache=skip_cache))
    return result.to_dict()
