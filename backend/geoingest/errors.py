"""Error taxonomy for the ingestion pipeline.

Each failure the pipeline can report is an IngestionError subclass carrying
a machine-checkable ``kind`` next to its human-readable message. Components
that run fallible strategies return tagged results instead of raising; the
orchestrator turns failed results into these errors and records them on the
outcome via to_detail().

Example:
    >>> from geoingest import errors
    >>> err = errors.ShapefileIncompleteError(
    ...     "Missing .shx",
    ...     kind=errors.ErrorKind.MISSING_SHX,
    ...     file_name="parcel.zip",
    ...     missing_files=[".shx"],
    ... )
    >>> err.to_detail().kind
    'missing_shx'
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from geoingest import models

if TYPE_CHECKING:
    from collections.abc import Sequence


class ErrorKind(enum.StrEnum):
    # classification
    UNKNOWN_FORMAT = "unknown_format"
    NO_SUPPORTED_FILES = "no_supported_files"
    DUPLICATE_FILE = "duplicate_file"
    # archive extraction
    EXTRACTION_FAILED = "extraction_failed"
    EMPTY_ARCHIVE = "empty_archive"
    PATH_TRAVERSAL = "path_traversal"
    UNSUPPORTED_ARCHIVE = "unsupported_archive"
    # shapefile completeness
    AUX_WITHOUT_CORE = "aux_without_core"
    INCOMPLETE_SHAPEFILE_WITH_AUXILIARY = "incomplete_shapefile_with_auxiliary"
    INCOMPLETE_SHAPEFILE = "incomplete_shapefile"
    MISSING_SHX = "missing_shx"
    MISSING_DBF = "missing_dbf"
    SHX_OR_DBF_WITHOUT_SHP = "shx_or_dbf_without_shp"
    # geospatial info
    TOOL_UNAVAILABLE = "tool_unavailable"
    TOOL_FAILED = "tool_failed"
    TOOL_TIMEOUT = "tool_timeout"
    INVALID_GEOJSON = "invalid_geojson"
    FILE_NOT_FOUND = "file_not_found"
    UNSUPPORTED_FORMAT = "unsupported_format"
    UNREADABLE_FILE = "unreadable_file"


class IngestionError(RuntimeError):
    """Base class for every failure reported by the pipeline.

    Attributes:
        kind: Machine-checkable error kind.
        file_name: Upload or archive the error refers to, if any.
        missing_files: Extensions the caller must supply to fix the error.
    """

    default_kind: ErrorKind = ErrorKind.EXTRACTION_FAILED

    def __init__(
        self,
        message: str,
        kind: ErrorKind | None = None,
        file_name: str | None = None,
        missing_files: Sequence[str] = (),
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind or self.default_kind
        self.file_name = file_name
        self.missing_files = list(missing_files)

    def to_detail(self) -> models.ErrorDetail:
        return models.ErrorDetail(
            kind=str(self.kind),
            message=self.message,
            file_name=self.file_name,
            missing_files=list(self.missing_files),
        )


class ClassificationError(IngestionError):
    """An uploaded file has an extension the pipeline does not accept."""

    default_kind = ErrorKind.UNKNOWN_FORMAT


class ExtractionError(IngestionError):
    """An archive could not be extracted safely by any strategy."""

    default_kind = ErrorKind.EXTRACTION_FAILED


class ShapefileIncompleteError(IngestionError):
    """A shapefile component set is missing required files."""

    default_kind = ErrorKind.INCOMPLETE_SHAPEFILE


class GeospatialExtractionError(IngestionError):
    """Structural metadata could not be derived from the primary file."""

    default_kind = ErrorKind.TOOL_FAILED
