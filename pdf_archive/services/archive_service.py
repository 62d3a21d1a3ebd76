from __future__ import annotations

import logging
import uuid
from typing import Any, Iterator

from fastapi import UploadFile
from pydantic import ValidationError as SchemaError

from pdf_archive.adapters.blob_store import BlobStore
from pdf_archive.adapters.pdf_inspector import PdfInspector
from pdf_archive.core.exceptions import NotFoundError, PayloadTooLargeError, StoreError, ValidationError
from pdf_archive.models.db_models import StoredFileRecord
from pdf_archive.models.schemas import (
    DOCUMENT_TYPES,
    MAX_FILENAME_LENGTH,
    PDF_CONTENT_TYPE,
    SEMESTERS,
    ArchiveOptions,
    DocumentMetadata,
    FileFilters,
    MetadataUpdate,
)


logger = logging.getLogger(__name__)

READ_BLOCK_SIZE = 64 * 1024


def _upload_size(upload: UploadFile) -> int:
    position = upload.file.tell()
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(position)
    return size


def _read_blocks(upload: UploadFile) -> Iterator[bytes]:
    upload.file.seek(0)
    while True:
        block = upload.file.read(READ_BLOCK_SIZE)
        if not block:
            return
        yield block


def _schema_errors(exc: SchemaError) -> list[dict[str, Any]]:
    return [
        {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
        for error in exc.errors(include_url=False, include_input=False)
    ]


def normalize_file_id(file_id: str) -> str:
    try:
        return uuid.UUID(file_id.strip()).hex
    except (ValueError, AttributeError) as exc:
        raise ValidationError("Invalid file id", file_id) from exc


class ArchiveService:
    """Upload, query, stream and mutate archived PDFs held in a :class:`BlobStore`."""

    def __init__(self, store: BlobStore, max_upload_bytes: int, inspector: PdfInspector | None = None) -> None:
        self.store = store
        self.max_upload_bytes = max_upload_bytes
        self.inspector = inspector or PdfInspector()

    def upload(self, file: UploadFile | None, fields: dict[str, Any]) -> StoredFileRecord:
        if file is None or not (file.filename or "").strip():
            raise ValidationError("No file uploaded")

        supplied = {key: value for key, value in fields.items() if value not in (None, "")}
        try:
            metadata = DocumentMetadata.model_validate(supplied)
        except SchemaError as exc:
            raise ValidationError("Missing or invalid metadata", _schema_errors(exc)) from exc

        content_type = (file.content_type or "").split(";", 1)[0].strip().lower()
        if content_type != PDF_CONTENT_TYPE:
            raise ValidationError("Only PDF files are allowed", file.content_type)

        size = _upload_size(file)
        if size == 0:
            raise ValidationError("Uploaded file is empty")
        if size > self.max_upload_bytes:
            raise PayloadTooLargeError(
                f"File exceeds the {self.max_upload_bytes // (1024 * 1024)} MB upload limit",
                {"size": size, "limit": self.max_upload_bytes},
            )

        filename = file.filename.strip()
        if len(filename) > MAX_FILENAME_LENGTH:
            raise ValidationError(f"Filename must be at most {MAX_FILENAME_LENGTH} characters", len(filename))

        page_count = self.inspector.count_pages(file.file)
        try:
            record = self.store.put(
                filename=filename,
                content_type=PDF_CONTENT_TYPE,
                source=_read_blocks(file),
                metadata=metadata.model_dump(),
                page_count=page_count,
            )
        except OSError as exc:
            logger.error("Upload stream failed", exc_info=True, extra={"file_name": filename})
            raise StoreError("Upload failed", str(exc)) from exc

        logger.info("Stored %s (%d bytes)", filename, record.length, extra={"file_id": record.id, "file_name": filename})
        return record

    def build_filters(self, query: dict[str, Any]) -> FileFilters:
        try:
            return FileFilters.model_validate(query)
        except SchemaError as exc:
            raise ValidationError("Invalid filter", _schema_errors(exc)) from exc

    def list_files(self, filters: FileFilters | None = None) -> list[StoredFileRecord]:
        filters = filters or FileFilters()
        search = (filters.q or "").strip() or None
        return self.store.find(filters.metadata_filters(), search=search)

    def get_file(self, file_id: str) -> StoredFileRecord:
        file_id = normalize_file_id(file_id)
        record = self.store.get(file_id)
        if record is None:
            raise NotFoundError("PDF not found", file_id)
        return record

    def open_content(self, file_id: str) -> tuple[StoredFileRecord, Iterator[bytes]]:
        record = self.get_file(file_id)
        return record, self.store.open_download_stream(record.id)

    def rename(self, file_id: str, new_filename: str) -> StoredFileRecord:
        file_id = normalize_file_id(file_id)
        new_filename = (new_filename or "").strip()
        if not new_filename:
            raise ValidationError("New filename must not be empty")

        record = self.store.rename(file_id, new_filename)
        if record is None:
            raise NotFoundError("File not found", file_id)
        logger.info("Renamed file to %s", new_filename, extra={"file_id": file_id, "file_name": new_filename})
        return record

    def update_metadata(self, file_id: str, update: MetadataUpdate) -> tuple[StoredFileRecord, dict[str, Any]]:
        file_id = normalize_file_id(file_id)
        changes = update.changes()
        if not changes:
            raise ValidationError("No metadata fields to update")

        record = self.store.update_metadata(file_id, changes)
        if record is None:
            raise NotFoundError("File not found", file_id)
        logger.info("Updated metadata fields %s", sorted(changes), extra={"file_id": file_id})
        return record, changes

    def delete(self, file_id: str) -> str:
        file_id = normalize_file_id(file_id)
        if not self.store.delete(file_id):
            raise NotFoundError("File not found", file_id)
        logger.info("Deleted file", extra={"file_id": file_id})
        return file_id

    def options(self) -> ArchiveOptions:
        records = self.store.find()
        years = {record.metadata_bag.get("year") for record in records}
        subjects = {record.metadata_bag.get("subject") for record in records}
        return ArchiveOptions(
            semesters=list(SEMESTERS),
            types=list(DOCUMENT_TYPES),
            years=sorted(year for year in years if isinstance(year, int)),
            subjects=sorted((subject for subject in subjects if subject), key=str.lower),
        )
