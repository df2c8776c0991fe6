"""Per-request orchestration of the upload ingestion pipeline.

IngestionOrchestrator.ingest() takes the files of one upload request and
returns a complete IngestionOutcome:

1. classify every file; unknown formats are reported and skipped,
2. stage standalone files under their original names in a private
   working directory,
3. extract all archives concurrently, each into its own directory, then
   check every archive's shapefile completeness in upload order, rejecting
   the whole request on the first failure,
4. check the standalone shapefile components the same way,
5. choose one primary file (first .shp, else first GeoJSON, else first
   file) and extract its geospatial metadata.

The working directory is removed before ingest() returns, whatever the
outcome.

Example:
    >>> from geoingest.core import capabilities, config
    >>> from geoingest.services.ingestion import IngestionOrchestrator

    >>> orchestrator = IngestionOrchestrator(
    ...     config.get_settings(), capabilities.get_capabilities()
    ... )
    >>> outcome = orchestrator.ingest([upload])
    >>> outcome.status, outcome.primary_file
    ('accepted', 'parcel.shp')
"""

from __future__ import annotations

import concurrent.futures
import logging
import pathlib
import shutil
import tempfile
from typing import TYPE_CHECKING

from geoingest import errors, models
from geoingest.services import (
    archive_extractor,
    format_classifier,
    geospatial_extractor,
    shapefile_validator,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from geoingest.core import capabilities, config

logger = logging.getLogger(__name__)

Staged = tuple[pathlib.Path, models.IngestedFile]


def _ingested(
    path: pathlib.Path, name: str, archive: str | None = None
) -> Staged:
    category = format_classifier.classify(path)
    return path, models.IngestedFile(
        name=name, format=str(category), archive=archive
    )


def select_primary(paths: Sequence[pathlib.Path]) -> pathlib.Path | None:
    """First .shp, else first GeoJSON, else the first file."""
    for path in paths:
        if format_classifier.extension_of(path) == ".shp":
            return path
    for path in paths:
        if (
            format_classifier.classify(path)
            == format_classifier.FileCategory.GEOJSON
        ):
            return path
    return paths[0] if paths else None


class IngestionOrchestrator:
    """Composes classification, extraction, validation and metadata steps.

    Args:
        settings: Application settings (work directory, worker count).
        tools: Capabilities probed once at startup.
        extractor: Archive extractor; built from settings when omitted.
        info_extractor: Geospatial extractor; built from settings when
            omitted.
    """

    def __init__(
        self,
        settings: config.Settings,
        tools: capabilities.ToolCapabilities,
        extractor: archive_extractor.ArchiveExtractor | None = None,
        info_extractor: geospatial_extractor.GeospatialInfoExtractor
        | None = None,
    ) -> None:
        self.settings = settings
        self.archive_extractor = extractor or archive_extractor.ArchiveExtractor(
            settings, tools
        )
        self.info_extractor = (
            info_extractor
            or geospatial_extractor.GeospatialInfoExtractor(settings, tools)
        )

    @staticmethod
    def _rejected(
        error_details: list[models.ErrorDetail],
    ) -> models.IngestionOutcome:
        return models.IngestionOutcome(
            status=models.IngestionStatus.REJECTED,
            files=[],
            primary_file=None,
            geospatial_info=None,
            metadata_complete=False,
            errors=error_details,
        )

    def ingest(
        self, uploads: Sequence[models.UploadedFile]
    ) -> models.IngestionOutcome:
        """Run the pipeline for one upload request.

        Args:
            uploads: Files of the request, in the order they were sent.

        Returns:
            IngestionOutcome. Classification errors are listed without
            affecting the status; extraction and shapefile errors reject
            the request; a metadata failure yields ``metadata_incomplete``.
        """
        error_details: list[models.ErrorDetail] = []
        classified: list[
            tuple[models.UploadedFile, format_classifier.FileCategory]
        ] = []
        for upload in uploads:
            category = format_classifier.classify(upload.original_name)
            if category == format_classifier.FileCategory.UNKNOWN:
                ext = format_classifier.extension_of(upload.original_name)
                error = errors.ClassificationError(
                    f"Unsupported file format: {ext or upload.original_name}",
                    file_name=upload.original_name,
                )
                logger.warning("Skipping %s: %s", upload.original_name, error)
                error_details.append(error.to_detail())
                continue
            classified.append((upload, category))

        if not classified:
            error_details.append(
                errors.ClassificationError(
                    "No supported geospatial files were uploaded",
                    kind=errors.ErrorKind.NO_SUPPORTED_FILES,
                ).to_detail()
            )
            return self._rejected(error_details)

        self.settings.work_dir.mkdir(parents=True, exist_ok=True)
        workdir = pathlib.Path(
            tempfile.mkdtemp(prefix="ingest-", dir=self.settings.work_dir)
        )
        try:
            return self._ingest_in(workdir, classified, error_details)
        except errors.IngestionError as exc:
            logger.warning("Rejected upload: [%s] %s", exc.kind, exc)
            error_details.append(exc.to_detail())
            return self._rejected(error_details)
        finally:
            shutil.rmtree(workdir)
            logger.debug("Removed working directory %s", workdir)

    def _stage(
        self,
        upload: models.UploadedFile,
        staging_dir: pathlib.Path,
        error_details: list[models.ErrorDetail],
    ) -> Staged | None:
        name = pathlib.PurePath(upload.original_name.replace("\\", "/")).name
        target = staging_dir / name
        if target.exists():
            error_details.append(
                errors.ClassificationError(
                    f"Duplicate file name ignored: {name}",
                    kind=errors.ErrorKind.DUPLICATE_FILE,
                    file_name=upload.original_name,
                ).to_detail()
            )
            return None
        try:
            shutil.copyfile(upload.stored_path, target)
        except OSError as exc:
            raise errors.IngestionError(
                f"Could not read uploaded file {upload.original_name}: {exc}",
                kind=errors.ErrorKind.UNREADABLE_FILE,
                file_name=upload.original_name,
            ) from exc
        return _ingested(target, name)

    def _extract_archives(
        self,
        archives: Sequence[models.UploadedFile],
        archive_root: pathlib.Path,
    ) -> list[tuple[pathlib.Path, models.ExtractionResult]]:
        """Extract every archive concurrently, results in upload order."""
        if not archives:
            return []
        destinations = [
            archive_root
            / f"{index:03d}_{pathlib.PurePath(upload.original_name).stem}"
            for index, upload in enumerate(archives)
        ]
        workers = max(1, min(self.settings.max_archive_workers, len(archives)))
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    self.archive_extractor.extract,
                    upload.stored_path,
                    dest,
                    format_classifier.archive_kind(upload.original_name),
                )
                for upload, dest in zip(archives, destinations, strict=True)
            ]
            return [
                (dest, future.result())
                for dest, future in zip(destinations, futures, strict=True)
            ]

    def _ingest_in(
        self,
        workdir: pathlib.Path,
        classified: Sequence[
            tuple[models.UploadedFile, format_classifier.FileCategory]
        ],
        error_details: list[models.ErrorDetail],
    ) -> models.IngestionOutcome:
        staging_dir = workdir / "files"
        staging_dir.mkdir()
        archives = [
            upload
            for upload, category in classified
            if category == format_classifier.FileCategory.ARCHIVE
        ]
        results = iter(self._extract_archives(archives, workdir / "archives"))

        # Keeps upload order: each upload contributes itself or its contents.
        ordered: list[Staged] = []
        standalone: list[pathlib.Path] = []
        for upload, category in classified:
            if category != format_classifier.FileCategory.ARCHIVE:
                staged = self._stage(upload, staging_dir, error_details)
                if staged is not None:
                    ordered.append(staged)
                    standalone.append(staged[0])
                continue

            dest, result = next(results)
            if not result.success:
                raise errors.ExtractionError(
                    result.error_detail or f"Could not extract {upload.original_name}",
                    kind=errors.ErrorKind(
                        result.error_kind or errors.ErrorKind.EXTRACTION_FAILED
                    ),
                    file_name=upload.original_name,
                )
            verdict = shapefile_validator.validate_files(result.extracted_files)
            if not verdict.accepted:
                raise errors.ShapefileIncompleteError(
                    f"{upload.original_name}: {verdict.message}",
                    kind=errors.ErrorKind(verdict.error_kind),
                    file_name=upload.original_name,
                    missing_files=verdict.missing_files,
                )
            ordered.extend(
                _ingested(
                    path,
                    path.relative_to(dest).as_posix(),
                    upload.original_name,
                )
                for path in result.extracted_files
            )

        verdict = shapefile_validator.validate_files(standalone)
        if not verdict.accepted:
            raise errors.ShapefileIncompleteError(
                verdict.message,
                kind=errors.ErrorKind(verdict.error_kind),
                file_name=", ".join(path.name for path in standalone),
                missing_files=verdict.missing_files,
            )

        primary = select_primary([path for path, _ in ordered])
        files = [ingested for _, ingested in ordered]
        if primary is None:
            raise errors.ClassificationError(
                "No supported geospatial files were uploaded",
                kind=errors.ErrorKind.NO_SUPPORTED_FILES,
            )
        primary_name = next(item.name for path, item in ordered if path == primary)

        result = self.info_extractor.extract(primary)
        if result.success and result.data is not None:
            return models.IngestionOutcome(
                status=models.IngestionStatus.ACCEPTED,
                files=files,
                primary_file=primary_name,
                geospatial_info=result.data,
                metadata_complete=True,
                errors=error_details,
            )

        failure = errors.GeospatialExtractionError(
            result.error or "Geospatial metadata could not be extracted",
            kind=errors.ErrorKind(
                result.error_kind or errors.ErrorKind.TOOL_FAILED
            ),
            file_name=primary_name,
        )
        logger.warning("Metadata incomplete for %s: %s", primary_name, failure)
        error_details.append(failure.to_detail())
        return models.IngestionOutcome(
            status=models.IngestionStatus.METADATA_INCOMPLETE,
            files=files,
            primary_file=primary_name,
            geospatial_info=None,
            metadata_complete=False,
            errors=error_details,
        )
