from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pdf_archive.adapters.blob_store import BlobStore
from pdf_archive.api import files_router, health_router
from pdf_archive.core.config import Settings, ensure_directories, settings as default_settings
from pdf_archive.core.exceptions import AppError, StoreError
from pdf_archive.core.logging import configure_logging
from pdf_archive.services.archive_service import ArchiveService


logger = logging.getLogger(__name__)

# Room for multipart boundaries and the metadata form fields.
MULTIPART_OVERHEAD_BYTES = 1024 * 1024


def create_app(settings: Settings | None = None, store: BlobStore | None = None) -> FastAPI:
    config = settings or default_settings
    configure_logging(debug=config.debug)

    if store is None:
        ensure_directories(config)
        store = BlobStore.from_url(config.database_url, chunk_size=config.chunk_size_bytes)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        store.init_schema()
        logger.info("File store ready")
        try:
            yield
        finally:
            store.dispose()

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)
    app.state.settings = config
    app.state.archive_service = ArchiveService(store, max_upload_bytes=config.max_upload_bytes)

    allow_any = "*" in config.allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=not allow_any,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_upload_size(request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit():
            if int(content_length) > config.max_upload_bytes + MULTIPART_OVERHEAD_BYTES:
                logger.warning("Rejected oversized request", extra={"path": request.url.path, "status_code": 413})
                return JSONResponse(
                    status_code=413,
                    content={
                        "message": f"File exceeds the {config.max_upload_size_mb} MB upload limit",
                        "error": None,
                    },
                )
        return await call_next(request)

    app.include_router(health_router)
    app.include_router(files_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        detail = exc.detail
        if isinstance(exc, StoreError) and not config.debug:
            detail = None
        if exc.status_code >= 500:
            logger.error("%s", exc.message, extra={"path": request.url.path, "status_code": exc.status_code})
        else:
            logger.warning("%s", exc.message, extra={"path": request.url.path, "status_code": exc.status_code})
        return JSONResponse(
            status_code=exc.status_code,
            content=jsonable_encoder({"message": exc.message, "error": detail}),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        logger.warning("Invalid request", extra={"path": request.url.path, "status_code": 400})
        return JSONResponse(status_code=400, content=jsonable_encoder({"message": "Invalid request", "error": errors}))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": str(exc) if config.debug else None},
        )

    return app


app = create_app()
