from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


PDF_CONTENT_TYPE = "application/pdf"

SEMESTERS = ("S1", "S2", "S3", "S4", "S5", "S6")
DOCUMENT_TYPES = ("Cours", "TD", "TP", "Devoirs", "Compositions", "Rattrapage")
MIN_YEAR = 2000
MAX_YEAR = 2100
MAX_FILENAME_LENGTH = 255

Semester = Literal["S1", "S2", "S3", "S4", "S5", "S6"]
DocumentType = Literal["Cours", "TD", "TP", "Devoirs", "Compositions", "Rattrapage"]


def _strip_subject(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("subject must not be empty")
    return value


class DocumentMetadata(BaseModel):
    """Metadata bag attached to every stored PDF."""

    model_config = ConfigDict(extra="ignore")

    semester: Semester
    type: DocumentType
    subject: str = Field(max_length=200)
    year: int = Field(ge=MIN_YEAR, le=MAX_YEAR)

    @field_validator("subject", mode="before")
    @classmethod
    def strip_subject(cls, value: Any) -> Any:
        return _strip_subject(value)


class MetadataUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    semester: Semester | None = None
    type: DocumentType | None = None
    subject: str | None = Field(default=None, max_length=200)
    year: int | None = Field(default=None, ge=MIN_YEAR, le=MAX_YEAR)

    @field_validator("subject", mode="before")
    @classmethod
    def strip_subject(cls, value: Any) -> Any:
        return _strip_subject(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RenameRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_filename: str = Field(alias="newFilename", max_length=MAX_FILENAME_LENGTH)

    @field_validator("new_filename")
    @classmethod
    def require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("newFilename must not be empty")
        return value


class FileFilters(BaseModel):
    semester: Semester | None = None
    type: DocumentType | None = None
    subject: str | None = None
    year: int | None = None
    q: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_means_absent(cls, value: Any) -> Any:
        # The client sends every filter, empty ones as "".
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    def metadata_filters(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude={"q"})


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FileSummary(CamelModel):
    id: str
    filename: str
    content_type: str
    length: int
    chunk_size: int
    page_count: int | None = None
    upload_date: datetime
    metadata: DocumentMetadata


class UploadResponse(CamelModel):
    message: str
    id: str
    filename: str


class RenameResponse(CamelModel):
    message: str
    id: str
    filename: str


class MetadataUpdateResponse(CamelModel):
    message: str
    id: str
    updated_fields: dict[str, Any]
    metadata: DocumentMetadata


class DeleteResponse(CamelModel):
    message: str
    id: str


class ArchiveOptions(CamelModel):
    semesters: list[str]
    types: list[str]
    years: list[int]
    subjects: list[str]


class ErrorResponse(BaseModel):
    message: str
    error: Any = None
