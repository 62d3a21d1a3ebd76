import os
import shutil
import sys
import tempfile
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

TEST_ROOT = Path(tempfile.mkdtemp(prefix="pdf_archive_tests_"))
os.environ["ARCHIVE_DATA_DIR"] = str(TEST_ROOT / "data")
os.environ["ARCHIVE_APP_DEBUG"] = "true"
os.environ.pop("ARCHIVE_DATABASE_URL", None)

CHUNK_SIZE = 1024


@pytest.fixture
def test_settings(tmp_path: Path):
    from pdf_archive.core.config import build_settings

    return replace(
        build_settings(),
        database_url=f"sqlite:///{(tmp_path / 'archive.db').as_posix()}",
        chunk_size_bytes=CHUNK_SIZE,
        max_upload_size_mb=1,
    )


@pytest.fixture
def store(test_settings):
    from pdf_archive.adapters.blob_store import BlobStore

    blob_store = BlobStore.from_url(test_settings.database_url, chunk_size=test_settings.chunk_size_bytes)
    blob_store.init_schema()
    yield blob_store
    blob_store.dispose()


@pytest.fixture
def client(test_settings):
    from pdf_archive.main import create_app

    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(scope="session", autouse=True)
def cleanup_tmp():
    yield
    shutil.rmtree(TEST_ROOT, ignore_errors=True)
