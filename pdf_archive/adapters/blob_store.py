from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Generator, Iterable, Iterator

from sqlalchemy import Engine, delete, func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pdf_archive.core.database import create_db_engine, create_session_factory, init_db, session_scope
from pdf_archive.core.exceptions import StoreError
from pdf_archive.models.db_models import StoredChunkRecord, StoredFileRecord


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 255 * 1024


class BlobStore:
    """Id-addressed large-object store.

    Each blob is one row in ``files`` (filename, content type, length and a JSON
    metadata bag) plus its content split into ``chunks`` rows of ``chunk_size``
    bytes numbered from 0. Every chunk except the last is exactly ``chunk_size``
    bytes long, so a reader can tell a truncated blob from a complete one.

    Every public method runs in its own transaction. SQLAlchemy failures are
    raised as :class:`StoreError`.
    """

    def __init__(self, engine: Engine, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.engine = engine
        self.chunk_size = chunk_size
        self._session_factory: sessionmaker[Session] = create_session_factory(engine)

    @classmethod
    def from_url(cls, database_url: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> BlobStore:
        return cls(create_db_engine(database_url), chunk_size=chunk_size)

    def init_schema(self) -> None:
        try:
            init_db(self.engine)
        except SQLAlchemyError as exc:
            raise StoreError("Could not initialise the file store", str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Store ping failed", exc_info=True)
            return False
        return True

    @contextmanager
    def _transaction(self, action: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self._session_factory) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Store %s failed", action, exc_info=True)
            raise StoreError(f"Store {action} failed", str(exc)) from exc

    def put(
        self,
        filename: str,
        content_type: str,
        source: Iterable[bytes],
        metadata: dict[str, Any],
        page_count: int | None = None,
    ) -> StoredFileRecord:
        """Write ``source`` as a new blob and return its committed record.

        Nothing is visible to other sessions until the last chunk is written;
        any exception raised while consuming ``source`` rolls the blob back.
        """
        with self._transaction("write") as session:
            record = StoredFileRecord(
                filename=filename,
                content_type=content_type,
                chunk_size=self.chunk_size,
                page_count=page_count,
                metadata_bag=dict(metadata),
            )
            session.add(record)
            session.flush()

            buffer = bytearray()
            n = 0
            length = 0
            for piece in source:
                if not piece:
                    continue
                buffer.extend(piece)
                length += len(piece)
                while len(buffer) >= self.chunk_size:
                    self._write_chunk(session, record.id, n, bytes(buffer[: self.chunk_size]))
                    del buffer[: self.chunk_size]
                    n += 1
            if buffer:
                self._write_chunk(session, record.id, n, bytes(buffer))

            record.length = length
        return record

    @staticmethod
    def _write_chunk(session: Session, file_id: str, n: int, data: bytes) -> None:
        chunk = StoredChunkRecord(file_id=file_id, n=n, data=data)
        session.add(chunk)
        session.flush()
        # Only one chunk of payload is held by the session at a time.
        session.expunge(chunk)

    def get(self, file_id: str) -> StoredFileRecord | None:
        with self._transaction("read") as session:
            return session.get(StoredFileRecord, file_id)

    def find(self, filters: dict[str, Any] | None = None, search: str | None = None) -> list[StoredFileRecord]:
        """Return blobs whose metadata equals every value in ``filters``.

        ``search`` is a case-insensitive substring matched against the filename
        or the ``subject`` metadata field.
        """
        statement = select(StoredFileRecord)
        for key, value in (filters or {}).items():
            field = StoredFileRecord.metadata_bag[key]
            if isinstance(value, bool) or not isinstance(value, int):
                statement = statement.where(field.as_string() == str(value))
            else:
                statement = statement.where(field.as_integer() == value)
        if search:
            needle = f"%{search.lower()}%"
            statement = statement.where(
                func.lower(StoredFileRecord.filename).like(needle)
                | func.lower(StoredFileRecord.metadata_bag["subject"].as_string()).like(needle)
            )
        statement = statement.order_by(StoredFileRecord.upload_date.asc(), StoredFileRecord.id.asc())

        with self._transaction("query") as session:
            return list(session.scalars(statement).all())

    def open_download_stream(self, file_id: str) -> Iterator[bytes]:
        """Yield the chunks of a blob in order.

        The read session is opened lazily and closed when the generator is
        exhausted, fails, or is closed early by the consumer.
        """
        session = self._session_factory()
        try:
            record = session.get(StoredFileRecord, file_id)
            if record is None:
                raise StoreError("File disappeared before it could be read", file_id)
            expected = -(-record.length // record.chunk_size) if record.length else 0

            statement = (
                select(StoredChunkRecord.n, StoredChunkRecord.data)
                .where(StoredChunkRecord.file_id == file_id)
                .order_by(StoredChunkRecord.n.asc())
                .execution_options(yield_per=1)
            )
            sent = 0
            for n, data in session.execute(statement):
                if n != sent:
                    raise StoreError("File content is incomplete", f"chunk {sent} of {file_id} is missing")
                yield data
                sent += 1
            if sent != expected:
                raise StoreError("File content is incomplete", f"expected {expected} chunks for {file_id}, read {sent}")
        except SQLAlchemyError as exc:
            logger.error("Store read failed", exc_info=True, extra={"file_id": file_id})
            raise StoreError("Store read failed", str(exc)) from exc
        finally:
            session.close()

    def rename(self, file_id: str, filename: str) -> StoredFileRecord | None:
        with self._transaction("rename") as session:
            record = session.get(StoredFileRecord, file_id)
            if record is None:
                return None
            record.filename = filename
            return record

    def update_metadata(self, file_id: str, changes: dict[str, Any]) -> StoredFileRecord | None:
        with self._transaction("metadata update") as session:
            record = session.get(StoredFileRecord, file_id)
            if record is None:
                return None
            # Reassign so the JSON column is flagged dirty.
            record.metadata_bag = {**record.metadata_bag, **changes}
            return record

    def delete(self, file_id: str) -> bool:
        with self._transaction("delete") as session:
            session.execute(delete(StoredChunkRecord).where(StoredChunkRecord.file_id == file_id))
            result = session.execute(delete(StoredFileRecord).where(StoredFileRecord.id == file_id))
            return result.rowcount > 0
