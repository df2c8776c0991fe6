"""Data models for uploads, extraction results and geospatial metadata.

This module defines the data structures passed between the pipeline
components. Every instance is created fresh for one ingestion request and
handed to the caller whole; none of them is persisted by the pipeline.

Example:
    Describing an uploaded file:
        >>> from geoingest.models import UploadedFile
        >>> upload = UploadedFile(
        ...     original_name="parcel.zip",
        ...     stored_path=Path("/uploads/3f2a.zip"),
        ...     size_bytes=20480,
        ...     declared_mime_type="application/zip",
        ... )

    The empty bounding box sentinel:
        >>> from geoingest.models import BoundingBox
        >>> BoundingBox.empty()
        BoundingBox(min_x=0.0, min_y=0.0, max_x=0.0, max_y=0.0)
"""

from __future__ import annotations

import dataclasses
import enum
import pathlib


@dataclasses.dataclass(frozen=True)
class UploadedFile:
    """A file received from the caller, read-only to the pipeline.

    Attributes:
        original_name: Filename as supplied by the user.
        stored_path: Where the caller saved the bytes.
        size_bytes: Size already validated upstream.
        declared_mime_type: Content type declared by the client, if any.
    """

    original_name: str
    stored_path: pathlib.Path
    size_bytes: int
    declared_mime_type: str | None = None


@dataclasses.dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned rectangle enclosing all geometry in a dataset.

    Always finite. A dataset without geometry gets the all-zero sentinel
    from empty(), never an infinite or half-filled box.
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @classmethod
    def empty(cls) -> BoundingBox:
        return cls(0.0, 0.0, 0.0, 0.0)

    @property
    def is_empty(self) -> bool:
        return self == BoundingBox.empty()


@dataclasses.dataclass(frozen=True)
class AttributeField:
    name: str
    type: str


@dataclasses.dataclass
class GeospatialInfo:
    """Structural metadata derived from one geospatial file.

    Attributes:
        feature_count: Number of features (never negative).
        geometry_type: Geometry type name, e.g. "Point" or "Polygon".
        bounding_box: Extent of all coordinates.
        coordinate_system: ``EPSG:<code>``, raw WKT, or "WGS84".
        attributes: Attribute schema in first-seen order.
        layer_name: Layer name reported by the source.
        file_size: Size of the source file in bytes.
        original_file_name: Basename of the source file.
        data_format: Format label from get_file_format().
        inferred_*: Suggested metadata-record fields filled by
            geoingest.services.metadata_inference.
    """

    feature_count: int
    geometry_type: str
    bounding_box: BoundingBox
    coordinate_system: str
    attributes: list[AttributeField]
    layer_name: str
    file_size: int | None = None
    original_file_name: str | None = None
    data_format: str | None = None
    inferred_title: str | None = None
    inferred_abstract: str | None = None
    inferred_topic_category: str | None = None
    inferred_descriptive_keywords: str | None = None
    inferred_attribute_description: str | None = None
    inferred_extent: str | None = None
    inferred_spatial_resolution: str | None = None
    inferred_resource_format: str | None = None


@dataclasses.dataclass(frozen=True)
class GeospatialExtractionResult:
    """Tagged result of a geospatial extraction attempt."""

    success: bool
    data: GeospatialInfo | None = None
    error: str | None = None
    error_kind: str | None = None

    @classmethod
    def ok(cls, data: GeospatialInfo) -> GeospatialExtractionResult:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: str) -> GeospatialExtractionResult:
        return cls(success=False, error=error, error_kind=kind)


class ExtractionStrategyKind(enum.StrEnum):
    NATIVE_TOOL = "native_tool"
    LIBRARY = "library"


@dataclasses.dataclass(frozen=True)
class StrategyAttempt:
    strategy: ExtractionStrategyKind
    success: bool
    detail: str = ""
    files: tuple[pathlib.Path, ...] = ()


@dataclasses.dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting one archive.

    Attributes:
        extracted_files: Extracted regular files, sorted by relative path.
        strategy_used: Strategy that produced the files, None on failure.
        success: True only when at least one file was extracted safely.
        error_detail: Strategy-annotated description of the failure.
        error_kind: Machine-checkable failure kind.
        attempts: Every strategy attempt in the order it was made.
    """

    extracted_files: tuple[pathlib.Path, ...]
    strategy_used: ExtractionStrategyKind | None
    success: bool
    error_detail: str | None = None
    error_kind: str | None = None
    attempts: tuple[StrategyAttempt, ...] = ()


@dataclasses.dataclass(frozen=True)
class ShapefileValidationVerdict:
    """Decision on whether a set of extensions forms an acceptable upload."""

    accepted: bool
    present_core_extensions: tuple[str, ...]
    present_auxiliary_extensions: tuple[str, ...]
    error_kind: str | None = None
    missing_core: tuple[str, ...] = ()
    message: str = ""

    @property
    def missing_files(self) -> list[str]:
        return list(self.missing_core)


@dataclasses.dataclass(frozen=True)
class ErrorDetail:
    kind: str
    message: str
    file_name: str | None = None
    missing_files: list[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class IngestedFile:
    """A file that took part in ingestion, standalone or from an archive."""

    name: str
    format: str
    archive: str | None = None


class IngestionStatus(enum.StrEnum):
    ACCEPTED = "accepted"
    METADATA_INCOMPLETE = "metadata_incomplete"
    REJECTED = "rejected"


@dataclasses.dataclass(frozen=True)
class IngestionOutcome:
    """Terminal result of one ingestion request.

    A rejected outcome carries no files and no geospatial info. An outcome
    whose metadata could not be derived keeps its files but sets
    ``metadata_complete`` to False and lists the reason in ``errors``.
    """

    status: IngestionStatus
    files: list[IngestedFile]
    primary_file: str | None
    geospatial_info: GeospatialInfo | None
    metadata_complete: bool
    errors: list[ErrorDetail]
