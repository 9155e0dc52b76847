"""Cache maintenance.

Routes
------
DELETE /cache   → 204, every cached page and search result dropped
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

router = APIRouter()


@router.delete("", status_code=204)
def clear_cache(request: Request) -> Response:
    request.app.state.layer.clear_cache()
    return Response(status_code=204)
