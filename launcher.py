from __future__ import annotations

import uvicorn

from pdf_archive.core.config import settings


if __name__ == "__main__":
    uvicorn.run("pdf_archive.main:app", host=settings.host, port=settings.port, reload=False)
