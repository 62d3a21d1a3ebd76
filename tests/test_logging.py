import json
import logging

from pdf_archive.core.logging import ContextTextFormatter, JsonLogFormatter


def test_json_formatter_includes_context_fields():
    record = logging.LogRecord("pdf_archive.test", logging.INFO, __file__, 1, "Deleted file", None, None)
    record.file_id = "abc123"
    record.status_code = 200

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["message"] == "Deleted file"
    assert payload["level"] == "INFO"
    assert payload["file_id"] == "abc123"
    assert payload["status_code"] == 200
    assert "file_name" not in payload


def test_text_formatter_appends_context_pairs():
    record = logging.LogRecord("pdf_archive.test", logging.INFO, __file__, 1, "Renamed file to %s", ("b.pdf",), None)
    record.file_id = "abc123"
    record.file_name = "b.pdf"

    line = ContextTextFormatter().format(record)

    assert "INFO pdf_archive.test Renamed file to b.pdf" in line
    assert line.endswith("file_id=abc123 file_name=b.pdf")


def test_text_formatter_without_context_is_plain():
    record = logging.LogRecord("pdf_archive.test", logging.WARNING, __file__, 1, "Store slow", None, None)

    assert ContextTextFormatter().format(record).endswith("WARNING pdf_archive.test Store slow")
