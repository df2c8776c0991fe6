"""Tests for extension-based classification of uploads."""

from __future__ import annotations

import pytest

from geoingest.services import format_classifier
from geoingest.services.format_classifier import FileCategory


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("roads.geojson", FileCategory.GEOJSON),
        ("ROADS.JSON", FileCategory.GEOJSON),
        ("parcel.shp", FileCategory.SHAPEFILE_COMPONENT),
        ("Parcel.DBF", FileCategory.SHAPEFILE_COMPONENT),
        ("parcel.prj", FileCategory.SHAPEFILE_COMPONENT),
        ("parcel.sbx", FileCategory.SHAPEFILE_COMPONENT),
        ("bundle.zip", FileCategory.ARCHIVE),
        ("bundle.RAR", FileCategory.ARCHIVE),
        ("notes.txt", FileCategory.UNKNOWN),
        ("README", FileCategory.UNKNOWN),
        ("archive.tar.gz", FileCategory.UNKNOWN),
    ],
)
def test_classify(filename: str, expected: FileCategory) -> None:
    assert format_classifier.classify(filename) == expected


def test_archive_kind() -> None:
    assert format_classifier.archive_kind("a.ZIP") == "zip"
    assert format_classifier.archive_kind("a.rar") == "rar"
    assert format_classifier.archive_kind("a.7z") is None


def test_get_file_format() -> None:
    assert format_classifier.get_file_format("a.json") == "GeoJSON"
    assert format_classifier.get_file_format("a.SHP") == "Shapefile"
    assert format_classifier.get_file_format("a.kml") == "KML"
    assert format_classifier.get_file_format("a.dbf") == "Unknown"


def test_is_supported_geospatial_format() -> None:
    assert format_classifier.is_supported_geospatial_format("a.gml")
    assert format_classifier.is_supported_geospatial_format("a.GeoJSON")
    assert not format_classifier.is_supported_geospatial_format("a.zip")
    assert not format_classifier.is_supported_geospatial_format("a.dbf")


def test_extension_of_uses_last_suffix() -> None:
    assert format_classifier.extension_of("dir.v2/parcel.backup.SHP") == ".shp"
    assert format_classifier.extension_of("noext") == ""
