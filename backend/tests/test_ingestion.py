"""Tests for the ingestion orchestrator.

These tests run the whole pipeline on real files in ``tmp_path``: archives
are built with :mod:`zipfile`, the native tools are disabled through
ToolCapabilities, and a stub stands in for the geospatial extractor where a
test needs a shapefile to be described without GDAL.
"""

from __future__ import annotations

import json
import pathlib
import zipfile

import pytest

from geoingest import models
from geoingest.core import capabilities, config
from geoingest.services import ingestion

JAKARTA = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [106.8, -6.2]},
            "properties": {"name": "Monas"},
        }
    ],
}


class StubInfoExtractor:
    """Describes every file as a single point and records the calls."""

    def __init__(self) -> None:
        self.paths: list[pathlib.Path] = []

    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult:
        self.paths.append(file_path)
        return models.GeospatialExtractionResult.ok(
            models.GeospatialInfo(
                feature_count=1,
                geometry_type="Polygon",
                bounding_box=models.BoundingBox(0, 0, 1, 1),
                coordinate_system="EPSG:4326",
                attributes=[],
                layer_name=file_path.stem,
            )
        )


def _settings(tmp_path: pathlib.Path) -> config.Settings:
    settings = config.Settings(
        storage_dir=tmp_path / "uploads",
        work_dir=tmp_path / "work",
        max_archive_workers=2,
    )
    settings.ensure_directories()
    return settings


def _orchestrator(
    tmp_path: pathlib.Path, info_extractor: object | None = None
) -> ingestion.IngestionOrchestrator:
    return ingestion.IngestionOrchestrator(
        _settings(tmp_path),
        capabilities.ToolCapabilities.none(),
        info_extractor=info_extractor,  # type: ignore[arg-type]
    )


def _upload(
    tmp_path: pathlib.Path, name: str, data: bytes
) -> models.UploadedFile:
    stored = tmp_path / "uploads" / f"{len(list(tmp_path.glob('uploads/*')))}"
    stored.parent.mkdir(parents=True, exist_ok=True)
    stored.write_bytes(data)
    return models.UploadedFile(
        original_name=name, stored_path=stored, size_bytes=len(data)
    )


def _zip_upload(
    tmp_path: pathlib.Path, name: str, members: dict[str, bytes]
) -> models.UploadedFile:
    source = tmp_path / f"build-{name}"
    with zipfile.ZipFile(source, "w") as zf:
        for member, data in members.items():
            zf.writestr(member, data)
    return _upload(tmp_path, name, source.read_bytes())


def _work_dir_is_empty(tmp_path: pathlib.Path) -> bool:
    return not any((tmp_path / "work").iterdir())


def test_geojson_upload_is_accepted(tmp_path: pathlib.Path) -> None:
    upload = _upload(
        tmp_path, "jakarta.geojson", json.dumps(JAKARTA).encode()
    )
    outcome = _orchestrator(tmp_path).ingest([upload])
    assert outcome.status == models.IngestionStatus.ACCEPTED
    assert outcome.metadata_complete
    assert outcome.primary_file == "jakarta.geojson"
    assert outcome.files == [models.IngestedFile("jakarta.geojson", "geojson")]
    assert outcome.geospatial_info is not None
    assert outcome.geospatial_info.feature_count == 1
    assert outcome.geospatial_info.bounding_box == models.BoundingBox(
        106.8, -6.2, 106.8, -6.2
    )
    assert outcome.errors == []
    assert _work_dir_is_empty(tmp_path)


def test_archive_with_only_auxiliary_files_is_rejected(
    tmp_path: pathlib.Path,
) -> None:
    upload = _zip_upload(
        tmp_path, "parcel.zip", {"parcel.cpg": b"UTF-8", "parcel.prj": b"GEOGCS"}
    )
    outcome = _orchestrator(tmp_path).ingest([upload])
    assert outcome.status == models.IngestionStatus.REJECTED
    assert outcome.files == []
    assert outcome.geospatial_info is None
    error = outcome.errors[-1]
    assert error.kind == "aux_without_core"
    assert error.missing_files == [".shp", ".shx", ".dbf"]
    assert error.file_name == "parcel.zip"
    assert error.message.startswith("parcel.zip: ")
    assert _work_dir_is_empty(tmp_path)


def test_complete_shapefile_archive_is_accepted(tmp_path: pathlib.Path) -> None:
    stub = StubInfoExtractor()
    upload = _zip_upload(
        tmp_path,
        "parcel.zip",
        {"parcel.shp": b"shp", "parcel.shx": b"shx", "parcel.dbf": b"dbf"},
    )
    outcome = _orchestrator(tmp_path, stub).ingest([upload])
    assert outcome.status == models.IngestionStatus.ACCEPTED
    assert outcome.primary_file == "parcel.shp"
    assert [f.name for f in outcome.files] == [
        "parcel.dbf",
        "parcel.shp",
        "parcel.shx",
    ]
    assert all(f.archive == "parcel.zip" for f in outcome.files)
    assert all(f.format == "shapefile_component" for f in outcome.files)
    assert stub.paths[0].name == "parcel.shp"
    assert _work_dir_is_empty(tmp_path)


def test_shp_with_auxiliary_only_is_rejected(tmp_path: pathlib.Path) -> None:
    upload = _zip_upload(
        tmp_path, "parcel.zip", {"parcel.shp": b"shp", "parcel.cpg": b"UTF-8"}
    )
    outcome = _orchestrator(tmp_path).ingest([upload])
    assert outcome.status == models.IngestionStatus.REJECTED
    assert outcome.errors[-1].kind == "incomplete_shapefile_with_auxiliary"
    assert outcome.errors[-1].missing_files == [".shx", ".dbf"]


def test_shapefile_without_gdal_is_metadata_incomplete(
    tmp_path: pathlib.Path,
) -> None:
    uploads = [
        _upload(tmp_path, "parcel.shp", b"shp"),
        _upload(tmp_path, "parcel.shx", b"shx"),
        _upload(tmp_path, "parcel.dbf", b"dbf"),
    ]
    outcome = _orchestrator(tmp_path).ingest(uploads)
    assert outcome.status == models.IngestionStatus.METADATA_INCOMPLETE
    assert not outcome.metadata_complete
    assert outcome.geospatial_info is None
    assert outcome.primary_file == "parcel.shp"
    assert len(outcome.files) == 3
    error = outcome.errors[-1]
    assert error.kind == "tool_unavailable"
    assert "GDAL" in error.message
    assert error.file_name == "parcel.shp"
    assert _work_dir_is_empty(tmp_path)


def test_incomplete_standalone_shapefile_is_rejected(
    tmp_path: pathlib.Path,
) -> None:
    uploads = [
        _upload(tmp_path, "parcel.shp", b"shp"),
        _upload(tmp_path, "parcel.dbf", b"dbf"),
    ]
    outcome = _orchestrator(tmp_path).ingest(uploads)
    assert outcome.status == models.IngestionStatus.REJECTED
    assert outcome.errors[-1].kind == "missing_shx"
    assert outcome.errors[-1].missing_files == [".shx"]


def test_only_unknown_files_are_rejected(tmp_path: pathlib.Path) -> None:
    outcome = _orchestrator(tmp_path).ingest(
        [_upload(tmp_path, "notes.txt", b"hello")]
    )
    assert outcome.status == models.IngestionStatus.REJECTED
    assert [e.kind for e in outcome.errors] == [
        "unknown_format",
        "no_supported_files",
    ]
    assert outcome.errors[0].file_name == "notes.txt"


def test_unknown_files_are_reported_and_skipped(tmp_path: pathlib.Path) -> None:
    uploads = [
        _upload(tmp_path, "notes.txt", b"hello"),
        _upload(tmp_path, "jakarta.geojson", json.dumps(JAKARTA).encode()),
    ]
    outcome = _orchestrator(tmp_path).ingest(uploads)
    assert outcome.status == models.IngestionStatus.ACCEPTED
    assert [f.name for f in outcome.files] == ["jakarta.geojson"]
    assert [e.kind for e in outcome.errors] == ["unknown_format"]


def test_duplicate_file_names_are_reported(tmp_path: pathlib.Path) -> None:
    data = json.dumps(JAKARTA).encode()
    uploads = [
        _upload(tmp_path, "jakarta.geojson", data),
        _upload(tmp_path, "jakarta.geojson", data),
    ]
    outcome = _orchestrator(tmp_path).ingest(uploads)
    assert outcome.status == models.IngestionStatus.ACCEPTED
    assert len(outcome.files) == 1
    assert [e.kind for e in outcome.errors] == ["duplicate_file"]


def test_corrupt_archive_rejects_upload(tmp_path: pathlib.Path) -> None:
    uploads = [
        _upload(tmp_path, "jakarta.geojson", json.dumps(JAKARTA).encode()),
        _upload(tmp_path, "broken.zip", b"not a zip"),
    ]
    outcome = _orchestrator(tmp_path).ingest(uploads)
    assert outcome.status == models.IngestionStatus.REJECTED
    assert outcome.errors[-1].kind == "extraction_failed"
    assert outcome.errors[-1].file_name == "broken.zip"
    assert _work_dir_is_empty(tmp_path)


def test_archives_and_files_keep_upload_order(tmp_path: pathlib.Path) -> None:
    stub = StubInfoExtractor()
    geojson = json.dumps(JAKARTA).encode()
    uploads = [
        _zip_upload(tmp_path, "first.zip", {"roads.geojson": geojson}),
        _upload(tmp_path, "jakarta.geojson", geojson),
        _zip_upload(
            tmp_path,
            "second.zip",
            {
                "data/parcel.shp": b"shp",
                "data/parcel.shx": b"shx",
                "data/parcel.dbf": b"dbf",
            },
        ),
        _zip_upload(tmp_path, "third.zip", {"rivers.json": geojson}),
    ]
    outcome = _orchestrator(tmp_path, stub).ingest(uploads)
    assert outcome.status == models.IngestionStatus.ACCEPTED
    assert [(f.name, f.archive) for f in outcome.files] == [
        ("roads.geojson", "first.zip"),
        ("jakarta.geojson", None),
        ("data/parcel.dbf", "second.zip"),
        ("data/parcel.shp", "second.zip"),
        ("data/parcel.shx", "second.zip"),
        ("rivers.json", "third.zip"),
    ]
    assert outcome.primary_file == "data/parcel.shp"
    assert _work_dir_is_empty(tmp_path)


def test_select_primary() -> None:
    paths = [
        pathlib.Path("a.dbf"),
        pathlib.Path("b.geojson"),
        pathlib.Path("c.SHP"),
    ]
    assert ingestion.select_primary(paths) == pathlib.Path("c.SHP")
    assert ingestion.select_primary(paths[:2]) == pathlib.Path("b.geojson")
    assert ingestion.select_primary(paths[:1]) == pathlib.Path("a.dbf")
    assert ingestion.select_primary([]) is None


class FailingInfoExtractor:
    def extract(
        self, file_path: pathlib.Path
    ) -> models.GeospatialExtractionResult:
        raise RuntimeError("extractor crashed")


def test_work_dir_removed_when_pipeline_crashes(
    tmp_path: pathlib.Path,
) -> None:
    upload = _upload(
        tmp_path, "jakarta.geojson", json.dumps(JAKARTA).encode()
    )
    orchestrator = _orchestrator(tmp_path, FailingInfoExtractor())
    with pytest.raises(RuntimeError, match="extractor crashed"):
        orchestrator.ingest([upload])
    assert _work_dir_is_empty(tmp_path)
