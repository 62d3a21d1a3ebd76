import pytest
from pydantic import ValidationError

from pdf_archive.models.schemas import DocumentMetadata, FileFilters, MetadataUpdate, RenameRequest


def test_metadata_accepts_sixth_semester_and_trims_subject():
    metadata = DocumentMetadata.model_validate({"semester": "S6", "type": "Rattrapage", "subject": "  Réseaux ", "year": "2030"})

    assert metadata.subject == "Réseaux"
    assert metadata.year == 2030


@pytest.mark.parametrize(
    "override",
    [
        {"semester": "S7"},
        {"type": "Examen"},
        {"subject": "   "},
        {"year": 1999},
        {"year": 2101},
    ],
)
def test_metadata_rejects_invalid_values(override):
    payload = {"semester": "S1", "type": "Cours", "subject": "Math", "year": 2024, **override}

    with pytest.raises(ValidationError):
        DocumentMetadata.model_validate(payload)


def test_metadata_update_reports_only_supplied_fields():
    update = MetadataUpdate.model_validate({"type": "Devoirs"})

    assert update.changes() == {"type": "Devoirs"}
    assert MetadataUpdate().changes() == {}


def test_metadata_update_forbids_unknown_fields():
    with pytest.raises(ValidationError):
        MetadataUpdate.model_validate({"filename": "x.pdf"})


def test_rename_request_uses_camel_case_field():
    assert RenameRequest.model_validate({"newFilename": " td.pdf "}).new_filename == "td.pdf"

    with pytest.raises(ValidationError):
        RenameRequest.model_validate({"newFilename": ""})


def test_filters_exclude_search_term_from_metadata_match():
    filters = FileFilters(semester="S3", q="algo")

    assert filters.metadata_filters() == {"semester": "S3"}


def test_filters_treat_blank_values_as_absent():
    filters = FileFilters.model_validate({"semester": "", "type": " ", "subject": "  Math ", "year": "", "q": None})

    assert filters.metadata_filters() == {"subject": "Math"}


def test_rename_request_rejects_overlong_name():
    with pytest.raises(ValidationError):
        RenameRequest.model_validate({"newFilename": "x" * 256})
