from __future__ import annotations

import unicodedata
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import StreamingResponse

from pdf_archive.models.db_models import StoredFileRecord
from pdf_archive.models.schemas import (
    PDF_CONTENT_TYPE,
    ArchiveOptions,
    DeleteResponse,
    DocumentMetadata,
    ErrorResponse,
    FileSummary,
    MetadataUpdate,
    MetadataUpdateResponse,
    RenameRequest,
    RenameResponse,
    UploadResponse,
)
from pdf_archive.services.archive_service import ArchiveService


files_router = APIRouter(
    prefix="/api/pdfs",
    tags=["files"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def get_archive_service(request: Request) -> ArchiveService:
    return request.app.state.archive_service


def _summary(record: StoredFileRecord) -> FileSummary:
    return FileSummary(
        id=record.id,
        filename=record.filename,
        content_type=record.content_type,
        length=record.length,
        chunk_size=record.chunk_size,
        page_count=record.page_count,
        upload_date=record.upload_date,
        metadata=DocumentMetadata.model_validate(record.metadata_bag),
    )


def _content_disposition(disposition: str, filename: str) -> str:
    fallback = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    fallback = fallback.replace("\\", "\\\\").replace('"', '\\"')
    header = f'{disposition}; filename="{fallback}"'
    if not filename.isascii():
        header += f"; filename*=utf-8''{quote(filename)}"
    return header


@files_router.post("/files", response_model=UploadResponse, status_code=201)
def upload_file(
    file: UploadFile | None = File(default=None),
    semester: str | None = Form(default=None),
    type: str | None = Form(default=None),
    subject: str | None = Form(default=None),
    year: str | None = Form(default=None),
    service: ArchiveService = Depends(get_archive_service),
) -> UploadResponse:
    record = service.upload(file, {"semester": semester, "type": type, "subject": subject, "year": year})
    return UploadResponse(message="PDF uploaded successfully", id=record.id, filename=record.filename)


@files_router.get("/files", response_model=list[FileSummary])
def list_files(
    semester: str | None = None,
    type: str | None = None,
    subject: str | None = None,
    year: str | None = None,
    q: str | None = None,
    service: ArchiveService = Depends(get_archive_service),
) -> list[FileSummary]:
    filters = service.build_filters({"semester": semester, "type": type, "subject": subject, "year": year, "q": q})
    return [_summary(record) for record in service.list_files(filters)]


@files_router.get("/options", response_model=ArchiveOptions)
def get_options(service: ArchiveService = Depends(get_archive_service)) -> ArchiveOptions:
    return service.options()


@files_router.get("/files/{file_id}", response_model=FileSummary)
def get_file(file_id: str, service: ArchiveService = Depends(get_archive_service)) -> FileSummary:
    return _summary(service.get_file(file_id))


@files_router.get("/files/{file_id}/content", response_class=StreamingResponse)
def download_file(
    file_id: str,
    download: bool = False,
    service: ArchiveService = Depends(get_archive_service),
) -> StreamingResponse:
    record, stream = service.open_content(file_id)
    disposition = "attachment" if download else "inline"
    return StreamingResponse(
        stream,
        media_type=PDF_CONTENT_TYPE,
        headers={
            "Content-Disposition": _content_disposition(disposition, record.filename),
            "Content-Length": str(record.length),
        },
    )


@files_router.api_route("/files/{file_id}", methods=["PUT", "PATCH"], response_model=RenameResponse)
def rename_file(
    file_id: str,
    payload: RenameRequest,
    service: ArchiveService = Depends(get_archive_service),
) -> RenameResponse:
    record = service.rename(file_id, payload.new_filename)
    return RenameResponse(message="File renamed successfully", id=record.id, filename=record.filename)


@files_router.api_route("/files/{file_id}/metadata", methods=["PUT", "PATCH"], response_model=MetadataUpdateResponse)
def update_file_metadata(
    file_id: str,
    update: MetadataUpdate,
    service: ArchiveService = Depends(get_archive_service),
) -> MetadataUpdateResponse:
    record, changes = service.update_metadata(file_id, update)
    return MetadataUpdateResponse(
        message="Metadata updated successfully",
        id=record.id,
        updated_fields=changes,
        metadata=DocumentMetadata.model_validate(record.metadata_bag),
    )


@files_router.delete("/files/{file_id}", response_model=DeleteResponse)
def delete_file(file_id: str, service: ArchiveService = Depends(get_archive_service)) -> DeleteResponse:
    deleted_id = service.delete(file_id)
    return DeleteResponse(message="File deleted successfully", id=deleted_id)
