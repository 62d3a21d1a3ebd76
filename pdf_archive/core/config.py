from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    host: str
    port: int
    debug: bool
    max_upload_size_mb: int
    chunk_size_bytes: int
    allowed_origins: tuple[str, ...]
    base_dir: Path
    data_dir: Path
    database_url: str

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


def _parse_origins(raw: str) -> tuple[str, ...]:
    origins = tuple(item.strip() for item in raw.split(",") if item.strip())
    return origins or ("*",)


def build_settings() -> Settings:
    base_dir = Path(__file__).resolve().parents[2]
    data_dir = Path(os.getenv("ARCHIVE_DATA_DIR", base_dir / "data"))
    database_path = data_dir / "archive.db"

    return Settings(
        app_name="PDF Archive",
        app_version="1.0.0",
        host=os.getenv("ARCHIVE_APP_HOST", "127.0.0.1"),
        port=int(os.getenv("ARCHIVE_APP_PORT", os.getenv("PORT", "3000"))),
        debug=os.getenv("ARCHIVE_APP_DEBUG", "false").lower() in {"1", "true", "yes"},
        max_upload_size_mb=int(os.getenv("ARCHIVE_MAX_UPLOAD_MB", "16")),
        chunk_size_bytes=int(os.getenv("ARCHIVE_CHUNK_SIZE_KB", "255")) * 1024,
        allowed_origins=_parse_origins(os.getenv("ARCHIVE_ALLOWED_ORIGINS", "*")),
        base_dir=base_dir,
        data_dir=data_dir,
        database_url=os.getenv("ARCHIVE_DATABASE_URL", f"sqlite:///{database_path.as_posix()}"),
    )


settings = build_settings()


def ensure_directories(config: Settings = settings) -> None:
    if config.database_url.startswith("sqlite:///"):
        config.data_dir.mkdir(parents=True, exist_ok=True)
