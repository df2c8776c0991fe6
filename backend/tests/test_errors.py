"""Tests for the error taxonomy."""

from __future__ import annotations

from geoingest import errors, models


def test_default_kinds() -> None:
    assert errors.ClassificationError("x").kind == "unknown_format"
    assert errors.ExtractionError("x").kind == "extraction_failed"
    assert errors.ShapefileIncompleteError("x").kind == "incomplete_shapefile"
    assert errors.GeospatialExtractionError("x").kind == "tool_failed"


def test_to_detail() -> None:
    error = errors.ShapefileIncompleteError(
        "The .shx file was not found.",
        kind=errors.ErrorKind.MISSING_SHX,
        file_name="parcel.zip",
        missing_files=(".shx",),
    )
    assert str(error) == "The .shx file was not found."
    assert isinstance(error, errors.IngestionError)
    assert error.to_detail() == models.ErrorDetail(
        kind="missing_shx",
        message="The .shx file was not found.",
        file_name="parcel.zip",
        missing_files=[".shx"],
    )
