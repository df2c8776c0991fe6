"""Extension-based classification of uploaded files.

Classification decides how the orchestrator treats each upload: GeoJSON and
shapefile components are used as they are, archives are extracted, anything
else is rejected before extraction. All checks are case-insensitive.

Example:
    >>> from geoingest.services import format_classifier
    >>> format_classifier.classify("PARCEL.SHP")
    <FileCategory.SHAPEFILE_COMPONENT: 'shapefile_component'>
    >>> format_classifier.get_file_format("roads.geojson")
    'GeoJSON'
"""

from __future__ import annotations

import enum
import pathlib

GEOJSON_EXTENSIONS = frozenset({".geojson", ".json"})
SHAPEFILE_CORE_EXTENSIONS = (".shp", ".shx", ".dbf")
SHAPEFILE_AUXILIARY_EXTENSIONS = (".prj", ".cpg", ".sbn", ".sbx")
SHAPEFILE_EXTENSIONS = frozenset(
    SHAPEFILE_CORE_EXTENSIONS + SHAPEFILE_AUXILIARY_EXTENSIONS
)
ARCHIVE_EXTENSIONS = {".zip": "zip", ".rar": "rar"}
SUPPORTED_GEOSPATIAL_EXTENSIONS = frozenset(
    {".geojson", ".json", ".shp", ".kml", ".gml"}
)

_FORMAT_LABELS = {
    ".geojson": "GeoJSON",
    ".json": "GeoJSON",
    ".shp": "Shapefile",
    ".kml": "KML",
    ".gml": "GML",
    ".csv": "CSV",
}


class FileCategory(enum.StrEnum):
    GEOJSON = "geojson"
    SHAPEFILE_COMPONENT = "shapefile_component"
    ARCHIVE = "archive"
    UNKNOWN = "unknown"


def extension_of(path: str | pathlib.Path) -> str:
    """Lower-cased final suffix of a filename, "" when there is none."""
    return pathlib.PurePath(str(path)).suffix.lower()


def classify(filename: str | pathlib.Path) -> FileCategory:
    """Classify a filename into one of the four upload categories.

    Args:
        filename: Name or path of the file.

    Returns:
        The FileCategory for the extension; UNKNOWN for anything else.
    """
    ext = extension_of(filename)
    if ext in GEOJSON_EXTENSIONS:
        return FileCategory.GEOJSON
    if ext in SHAPEFILE_EXTENSIONS:
        return FileCategory.SHAPEFILE_COMPONENT
    if ext in ARCHIVE_EXTENSIONS:
        return FileCategory.ARCHIVE
    return FileCategory.UNKNOWN


def archive_kind(path: str | pathlib.Path) -> str | None:
    """Return "zip" or "rar" for archives, None otherwise."""
    return ARCHIVE_EXTENSIONS.get(extension_of(path))


def get_file_format(path: str | pathlib.Path) -> str:
    """Human-readable data format label for metadata records."""
    return _FORMAT_LABELS.get(extension_of(path), "Unknown")


def is_supported_geospatial_format(path: str | pathlib.Path) -> bool:
    """Whether the file is a format the metadata record can describe."""
    return extension_of(path) in SUPPORTED_GEOSPATIAL_EXTENSIONS
