"""Structural metadata extraction from GeoJSON files and shapefiles.

Two strategies derive a GeospatialInfo from a file:

- OgrInfoStrategy runs ``ogrinfo -al -so`` and scans its plain-text report
  for the layer name, feature count, geometry type, extent, attribute
  fields and spatial reference system.
- GeoJsonStrategy parses GeoJSON directly, without GDAL.

GeospatialInfoExtractor picks the strategy chain for a file from the tool
capabilities probed at startup. GeoJSON always goes to the pure parser, so
its result does not depend on the host; ``ogrinfo``, when available, only
reads GeoJSON documents the parser rejects. Shapefiles need ``ogrinfo`` and
fail with an instruction to install GDAL without it.
Every strategy returns a GeospatialExtractionResult rather than raising.

Example:
    Extract metadata from a GeoJSON file:
        >>> from geoingest.services import geospatial_extractor
        >>> result = geospatial_extractor.extract_geospatial_info(
        ...     Path("jakarta.geojson")
        ... )
        >>> result.success, result.data.geometry_type
        (True, 'Point')

    With an explicitly configured extractor:
        >>> from geoingest.core.capabilities import ToolCapabilities
        >>> extractor = geospatial_extractor.GeospatialInfoExtractor(
        ...     settings, ToolCapabilities(ogrinfo=False)
        ... )
        >>> extractor.extract(Path("parcel.shp")).error_kind
        'tool_unavailable'
"""

from __future__ import annotations

import json
import logging
import math
import pathlib
import re
from typing import TYPE_CHECKING, Any, Protocol

from geoingest import errors, models
from geoingest.core import capabilities, config
from geoingest.services import bbox, format_classifier, metadata_inference
from geoingest.utils import command_helpers

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_COORDINATE_SYSTEM = "WGS84"
OGR_FIELD_TYPES = (
    "Integer64List",
    "IntegerList",
    "Integer64",
    "Integer",
    "RealList",
    "Real",
    "StringList",
    "String",
    "DateTime",
    "Date",
    "Time",
    "Binary",
)

_LAYER_NAME = re.compile(r"^Layer name:\s*(.*)$")
_FEATURE_COUNT = re.compile(r"^Feature Count:\s*(\d+)")
_GEOMETRY = re.compile(r"^Geometry:\s*(.+)$")
_EXTENT = re.compile(r"^Extent:\s*(.*)$")
_PARENTHESIZED = re.compile(r"\(([^)]*)\)")
_FIELD = re.compile(
    r"^(?P<name>[^:=]+?):\s*(?P<type>"
    + "|".join(OGR_FIELD_TYPES)
    + r")(?:\(\w+\))?(?:\s*\([\d.]+\))?\s*$"
)
_EPSG = re.compile(r'(?:AUTHORITY|ID)\[\s*"EPSG"\s*,\s*"?(\d+)"?\s*\]')
_SRS_SENTINELS = (
    "Geometry Column",
    "Data axis to CRS axis mapping",
    "FID Column",
    "Coordinate epoch",
    "Layer name:",
)


def _normalize_geometry_type(label: str) -> str:
    """Turn ogrinfo labels like "3D Multi Polygon" into "3D MultiPolygon"."""
    label = re.sub(r"\s*\(.*\)\s*$", "", label.strip())
    prefix = ""
    for qualifier in ("3D Measured ", "3D ", "Measured "):
        if label.startswith(qualifier):
            prefix, label = qualifier, label[len(qualifier) :]
            break
    return prefix + label.replace(" ", "")


def _parse_extent(text: str) -> models.BoundingBox | None:
    groups = []
    for group in _PARENTHESIZED.findall(text):
        try:
            groups.append([float(v) for v in group.split(",") if v.strip()])
        except ValueError:
            return None
    if len(groups) == 1 and len(groups[0]) == 4:
        values = groups[0]
    elif len(groups) == 2 and len(groups[0]) >= 2 and len(groups[1]) >= 2:
        values = [groups[0][0], groups[0][1], groups[1][0], groups[1][1]]
    else:
        return None
    if not all(math.isfinite(v) for v in values):
        return None
    return models.BoundingBox(*values)


def coordinate_system_from_wkt(wkt: str) -> str:
    """Reduce a WKT block to ``EPSG:<code>`` when it names one.

    The last EPSG identifier belongs to the outermost CRS; earlier ones
    name its datum, ellipsoid or base CRS. Without one the raw text is
    kept, and an empty or ``(unknown)`` block becomes "WGS84".
    """
    text = " ".join(wkt.split())
    if not text or text.lower() == "(unknown)":
        return DEFAULT_COORDINATE_SYSTEM
    codes = _EPSG.findall(text)
    if codes:
        return f"EPSG:{codes[-1]}"
    return text


def parse_ogrinfo_output(output: str) -> models.GeospatialInfo:
    """Parse an ``ogrinfo -al -so`` summary report.

    Only the first layer of a multi-layer report is described.

    Args:
        output: The report printed on stdout.

    Returns:
        GeospatialInfo with the values found; fields missing from the
        report keep neutral defaults (0 features, empty bounding box,
        "WGS84").
    """
    layer_name = ""
    feature_count = 0
    geometry_type = ""
    bounding_box = models.BoundingBox.empty()
    srs_lines: list[str] = []
    attributes: list[models.AttributeField] = []
    in_srs = False
    seen_layer = False

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if in_srs:
            if line.startswith(_SRS_SENTINELS) or _FIELD.match(line):
                in_srs = False
            else:
                srs_lines.append(line)
                continue

        if match := _LAYER_NAME.match(line):
            if seen_layer:
                break
            seen_layer = True
            layer_name = match.group(1).strip()
        elif match := _FEATURE_COUNT.match(line):
            feature_count = int(match.group(1))
        elif match := _GEOMETRY.match(line):
            geometry_type = _normalize_geometry_type(match.group(1))
        elif match := _EXTENT.match(line):
            bounding_box = _parse_extent(match.group(1)) or bounding_box
        elif line.startswith("Layer SRS WKT:"):
            in_srs = True
        elif match := _FIELD.match(line):
            attributes.append(
                models.AttributeField(
                    name=match.group("name").strip(),
                    type=match.group("type"),
                )
            )

    return models.GeospatialInfo(
        feature_count=feature_count,
        geometry_type=geometry_type,
        bounding_box=bounding_box,
        coordinate_system=coordinate_system_from_wkt(" ".join(srs_lines)),
        attributes=attributes,
        layer_name=layer_name,
    )


def property_type(value: Any) -> str:
    """OGR-style field type for a GeoJSON property value."""
    if isinstance(value, bool):
        return "String"
    if isinstance(value, int):
        return "Integer"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return "Integer"
        return "Real"
    return "String"


class GeospatialStrategy(Protocol):
    name: str

    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult: ...


class OgrInfoStrategy:
    """Describe a file with GDAL's ``ogrinfo`` summary mode."""

    name = "ogrinfo"

    def __init__(self, settings: config.Settings) -> None:
        self.settings = settings

    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult:
        command = (
            self.settings.ogrinfo_command,
            "-al",
            "-so",
            str(file_path),
        )
        try:
            result = command_helpers.run_command(
                command,
                timeout=self.settings.command_timeout_seconds,
                max_output_bytes=self.settings.max_command_output_bytes,
            )
        except command_helpers.CommandTimeoutError as exc:
            return models.GeospatialExtractionResult.fail(
                str(exc), errors.ErrorKind.TOOL_TIMEOUT
            )
        except command_helpers.CommandNotFoundError as exc:
            return models.GeospatialExtractionResult.fail(
                str(exc), errors.ErrorKind.TOOL_UNAVAILABLE
            )
        except command_helpers.CommandError as exc:
            return models.GeospatialExtractionResult.fail(
                f"Error executing ogrinfo: {exc}", errors.ErrorKind.TOOL_FAILED
            )

        info = parse_ogrinfo_output(result.stdout)
        if not info.layer_name:
            info.layer_name = file_path.stem
        logger.debug("Parsed ogrinfo report for %s: %s", file_path.name, info)
        return models.GeospatialExtractionResult.ok(info)


class GeoJsonStrategy:
    """Derive metadata from a GeoJSON document without GDAL."""

    name = "geojson"

    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult:
        try:
            text = file_path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError as exc:
            return models.GeospatialExtractionResult.fail(
                f"Error parsing GeoJSON: {exc}", errors.ErrorKind.INVALID_GEOJSON
            )
        except OSError as exc:
            return models.GeospatialExtractionResult.fail(
                f"Could not read {file_path.name}: {exc}",
                errors.ErrorKind.UNREADABLE_FILE,
            )
        try:
            document = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as exc:
            return models.GeospatialExtractionResult.fail(
                f"Error parsing GeoJSON: {exc}", errors.ErrorKind.INVALID_GEOJSON
            )

        doc_type = document.get("type") if isinstance(document, dict) else None
        if doc_type == "FeatureCollection":
            features = document.get("features") or []
        elif doc_type == "Feature":
            features = [document]
        else:
            return models.GeospatialExtractionResult.fail(
                "Invalid GeoJSON file: top-level type must be "
                "FeatureCollection or Feature",
                errors.ErrorKind.INVALID_GEOJSON,
            )
        if not isinstance(features, list):
            return models.GeospatialExtractionResult.fail(
                "Invalid GeoJSON file: features must be an array",
                errors.ErrorKind.INVALID_GEOJSON,
            )

        geometry_type = ""
        geometries = []
        attributes: dict[str, str] = {}
        for feature in features:
            if not isinstance(feature, dict):
                continue
            geometry = feature.get("geometry")
            if isinstance(geometry, dict):
                if not geometry_type and isinstance(geometry.get("type"), str):
                    geometry_type = geometry["type"]
                geometries.append(geometry)
            properties = feature.get("properties")
            if isinstance(properties, dict):
                for key, value in properties.items():
                    attributes.setdefault(key, property_type(value))

        return models.GeospatialExtractionResult.ok(
            models.GeospatialInfo(
                feature_count=len(features),
                geometry_type=geometry_type or "Unknown",
                bounding_box=bbox.bounding_box(geometries),
                coordinate_system=DEFAULT_COORDINATE_SYSTEM,
                attributes=[
                    models.AttributeField(name=name, type=type_)
                    for name, type_ in attributes.items()
                ],
                layer_name=file_path.stem,
            )
        )


class GeospatialInfoExtractor:
    """Chooses and runs the extraction strategies for a file.

    Args:
        settings: Application settings for command names and limits.
        tools: Capabilities probed once at startup.
        infer_metadata: Whether to add the inferred metadata-record
            fields to successful results.
    """

    def __init__(
        self,
        settings: config.Settings,
        tools: capabilities.ToolCapabilities,
        infer_metadata: bool = True,
    ) -> None:
        self.settings = settings
        self.tools = tools
        self.infer_metadata = infer_metadata
        self.ogrinfo = OgrInfoStrategy(settings)
        self.geojson = GeoJsonStrategy()

    def strategies_for(self, file_path: pathlib.Path) -> Sequence[GeospatialStrategy]:
        ext = format_classifier.extension_of(file_path)
        if ext in format_classifier.GEOJSON_EXTENSIONS:
            if self.tools.ogrinfo:
                return (self.geojson, self.ogrinfo)
            return (self.geojson,)
        if ext == ".shp" and self.tools.ogrinfo:
            return (self.ogrinfo,)
        return ()

    def _finish(
        self, info: models.GeospatialInfo, file_path: pathlib.Path
    ) -> models.GeospatialInfo:
        info.original_file_name = file_path.name
        info.data_format = format_classifier.get_file_format(file_path)
        info.file_size = file_path.stat().st_size
        if self.infer_metadata:
            info = metadata_inference.infer_metadata_fields(info, file_path)
        return info

    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult:
        """Extract structural metadata from one file.

        Args:
            file_path: A .geojson, .json or .shp file.

        Returns:
            GeospatialExtractionResult with ``data`` on success, or an
            ``error`` and ``error_kind`` describing why no metadata
            could be derived.
        """
        file_path = pathlib.Path(file_path)
        if not file_path.is_file():
            return models.GeospatialExtractionResult.fail(
                f"File not found: {file_path.name}",
                errors.ErrorKind.FILE_NOT_FOUND,
            )

        ext = format_classifier.extension_of(file_path)
        strategies = self.strategies_for(file_path)
        if not strategies:
            if ext == ".shp":
                return models.GeospatialExtractionResult.fail(
                    "Shapefile extraction requires GDAL (ogrinfo). "
                    "Please install GDAL first.",
                    errors.ErrorKind.TOOL_UNAVAILABLE,
                )
            return models.GeospatialExtractionResult.fail(
                f"Unsupported file format: {ext or file_path.name}",
                errors.ErrorKind.UNSUPPORTED_FORMAT,
            )

        failures: list[str] = []
        result = models.GeospatialExtractionResult.fail(
            "no strategy ran", errors.ErrorKind.UNSUPPORTED_FORMAT
        )
        for strategy in strategies:
            result = strategy.extract(file_path)
            if result.success and result.data is not None:
                logger.info(
                    "Extracted metadata from %s with %s",
                    file_path.name,
                    strategy.name,
                )
                return models.GeospatialExtractionResult.ok(
                    self._finish(result.data, file_path)
                )
            logger.warning(
                "%s failed for %s: %s", strategy.name, file_path.name, result.error
            )
            failures.append(f"{strategy.name}: {result.error}")

        if len(failures) > 1:
            return models.GeospatialExtractionResult.fail(
                "; ".join(failures), result.error_kind or errors.ErrorKind.TOOL_FAILED
            )
        return result


def extract_geospatial_info(
    file_path: pathlib.Path | str,
    extractor: GeospatialInfoExtractor | None = None,
) -> models.GeospatialExtractionResult:
    """Extract metadata using the application settings and capabilities."""
    if extractor is None:
        extractor = GeospatialInfoExtractor(
            config.get_settings(), capabilities.get_capabilities()
        )
    return extractor.extract(pathlib.Path(file_path))
