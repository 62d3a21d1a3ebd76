from __future__ import annotations

import logging
from typing import BinaryIO

import pdfplumber


logger = logging.getLogger(__name__)


class PdfInspector:
    """Read cheap facts out of an uploaded PDF without rejecting anything."""

    def count_pages(self, stream: BinaryIO) -> int | None:
        position = stream.tell()
        try:
            with pdfplumber.open(stream) as pdf:
                return len(pdf.pages)
        except Exception as exc:  # pdfminer raises many unrelated parser error types
            logger.info("Could not read page count: %s", exc)
            return None
        finally:
            stream.seek(position)
