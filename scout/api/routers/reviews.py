"""Review endpoint.

Routes
------
GET /reviews?url=<url>   → fragments, summary and topic breakdown
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from scout.api.routers.fetch import _require_http

router = APIRouter()


@router.get("")
def reviews(request: Request, url: str) -> dict[str, Any]:
    layer = request.app.state.layer
    return layer.review_summary(_require_http(url))
