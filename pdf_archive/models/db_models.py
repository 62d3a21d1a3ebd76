from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pdf_archive.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredFileRecord(Base):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(127), nullable=False)
    length: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    chunk_size: Mapped[int] = mapped_column(Integer, nullable=False)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # "metadata" is reserved on declarative classes.
    metadata_bag: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)
    upload_date: Mapped[datetime] = mapped_column(DateTime, default=_utcnow, nullable=False, index=True)

    chunks: Mapped[list["StoredChunkRecord"]] = relationship(
        "StoredChunkRecord",
        back_populates="file",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="StoredChunkRecord.n",
    )


class StoredChunkRecord(Base):
    __tablename__ = "chunks"
    __table_args__ = (UniqueConstraint("file_id", "n", name="uq_chunks_file_n"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[str] = mapped_column(String(32), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    n: Mapped[int] = mapped_column(Integer, nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    file: Mapped[StoredFileRecord] = relationship("StoredFileRecord", back_populates="chunks")
