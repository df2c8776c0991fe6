"""File upload ingestion API endpoint.

This module provides the REST endpoint that accepts one upload request (any
mix of GeoJSON files, shapefile components and zip/rar archives), stores
the files, and runs the ingestion pipeline over them. The pipeline is
blocking (subprocesses, archive extraction, JSON parsing), so it runs in the
threadpool and never on the event loop.

Example:
    Upload a zipped shapefile:
        >>> response = client.post(
        ...     "/api/uploads/ingest",
        ...     files=[("files", ("parcel.zip", open("parcel.zip", "rb")))],
        ... )
        >>> response.json()["status"]
        'accepted'
"""

from __future__ import annotations

import dataclasses
import pathlib
import shutil
import tempfile
import uuid
from typing import Any

import fastapi
from fastapi import concurrency, encoders

from geoingest import models
from geoingest.core import capabilities, config
from geoingest.services import ingestion

router = fastapi.APIRouter(prefix="/api/uploads", tags=["uploads"])


def _get_orchestrator(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    tools: capabilities.ToolCapabilities = fastapi.Depends(  # noqa: B008
        capabilities.get_capabilities
    ),
) -> ingestion.IngestionOrchestrator:
    """Resolve the ingestion orchestrator dependency."""
    return ingestion.IngestionOrchestrator(settings, tools)


def _safe_filename(filename: str | None) -> str:
    name = pathlib.PurePath((filename or "").replace("\\", "/")).name
    return name or "upload"


def _save_upload(
    file: fastapi.UploadFile,
    storage_dir: pathlib.Path,
    max_size: int,
    stored_name: str | None = None,
) -> models.UploadedFile:
    """Persist an uploaded file to disk with size validation.

    Args:
        file: FastAPI UploadFile object containing the file data.
        storage_dir: Directory where the file should be saved.
        max_size: Maximum allowed file size in bytes.
        stored_name: Name of the stored copy; the original filename
            when omitted.

    Returns:
        UploadedFile describing the stored copy.

    Raises:
        HTTPException: If the file exceeds the maximum size limit.
    """
    storage_dir.mkdir(parents=True, exist_ok=True)
    original_name = _safe_filename(file.filename)
    target_path = storage_dir / (stored_name or original_name)
    size = 0
    with tempfile.NamedTemporaryFile(delete=False, dir=storage_dir) as tmp:
        try:
            for chunk in iter(lambda: file.file.read(1024 * 1024), b""):
                size += len(chunk)
                if size > max_size:
                    raise fastapi.HTTPException(
                        status_code=413,
                        detail=f"Upload too large: {original_name}",
                    )

                tmp.write(chunk)
        except fastapi.HTTPException:
            tmp.close()
            pathlib.Path(tmp.name).unlink(missing_ok=True)
            raise

        tmp.flush()

    shutil.move(tmp.name, target_path)

    return models.UploadedFile(
        original_name=original_name,
        stored_path=target_path,
        size_bytes=size,
        declared_mime_type=file.content_type,
    )


def outcome_to_dict(outcome: models.IngestionOutcome) -> dict[str, Any]:
    """Convert an outcome into a JSON-ready dictionary."""
    result: dict[str, Any] = encoders.jsonable_encoder(
        dataclasses.asdict(outcome)
    )
    return result


@router.post("/ingest")
async def ingest_upload(
    files: list[fastapi.UploadFile] | None = fastapi.File(None),  # noqa: B008
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    orchestrator: ingestion.IngestionOrchestrator = fastapi.Depends(  # noqa: B008
        _get_orchestrator
    ),
) -> dict[str, Any]:
    """Store the uploaded files and derive their geospatial metadata.

    Each request's files are stored together in their own directory under
    the configured storage directory. Stored names carry the upload
    position, so files sharing a name never overwrite each other; the
    pipeline works from the original names.

    Args:
        files: Uploaded files from multipart form data (field ``files``).
        settings: Application settings (injected via FastAPI Depends).
        orchestrator: Ingestion pipeline (injected via FastAPI Depends).

    Returns:
        The IngestionOutcome as a dictionary, plus the ``upload_id`` of
        the stored files. Rejections are reported in the body with
        ``status`` "rejected" and structured ``errors``.

    Raises:
        HTTPException: 400 without files, 413 when a file is too large.
    """
    if not files:
        raise fastapi.HTTPException(status_code=400, detail="No files uploaded")

    upload_id = str(uuid.uuid4())
    upload_dir = settings.storage_dir / upload_id
    try:
        uploads = [
            _save_upload(
                file,
                upload_dir,
                settings.max_upload_size_bytes,
                f"{index:03d}_{_safe_filename(file.filename)}",
            )
            for index, file in enumerate(files)
        ]
    except fastapi.HTTPException:
        shutil.rmtree(upload_dir, ignore_errors=True)
        raise

    outcome = await concurrency.run_in_threadpool(orchestrator.ingest, uploads)

    result = outcome_to_dict(outcome)
    result["upload_id"] = upload_id
    return result
