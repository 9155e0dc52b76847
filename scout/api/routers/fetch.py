"""Page fetch endpoints.

Routes
------
GET  /fetch?url=<url>&timeout=<s>&skip_cache=false   → PageResult
POST /fetch/batch   Body: {"urls": [...], "max_concurrency": 3}
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, Field

from scout.models import FetchOptions

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class BatchRequest(BaseModel):
    urls: list[str] = Field(..., min_length=1, max_length=100)
    max_concurrency: Optional[int] = Field(None, ge=1, le=20)
    timeout: Optional[float] = Field(None, gt=0)
    skip_cache: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_http(url: str) -> str:
    if not url.startswith(("http://", "https://")):
        raise HTTPException(status_code=422, detail=f"Not an http(s) URL: {url!r}")
    return url


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("")
def fetch_page(
    request: Request,
    url: str,
    timeout: Optional[float] = Query(None, gt=0),
    skip_cache: bool = False,
) -> dict[str, Any]:
    """Fetch one page and return its extracted content."""
    layer = request.app.state.layer
    options = FetchOptions(timeout=timeout, skip_cache=skip_cache)
    return layer.fetch_page(_require_http(url), options).to_dict()


@router.post("/batch")
def fetch_batch(body: BatchRequest, request: Request) -> list[dict[str, Any]]:
    """Fetch several pages in bounded batches.  Output order matches input."""
    layer = request.app.state.layer
    urls = [_require_http(u) for u in body.urls]
    options = FetchOptions(
        timeout=body.timeout,
        skip_cache=body.skip_cache,
        max_concurrency=body.max_concurrency,
    )
    return [page.to_dict() for page in layer.fetch_multiple(urls, options)]
