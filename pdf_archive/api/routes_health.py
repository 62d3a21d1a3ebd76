from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse


health_router = APIRouter(tags=["health"])


@health_router.get("/health")
def health(request: Request) -> JSONResponse:
    config = request.app.state.settings
    store_ok = request.app.state.archive_service.store.ping()
    return JSONResponse(
        status_code=200 if store_ok else 503,
        content={
            "status": "ok" if store_ok else "degraded",
            "app": config.app_name,
            "version": config.app_version,
            "store": "ok" if store_ok else "unreachable",
        },
    )
