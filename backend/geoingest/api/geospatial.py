"""Single-file geospatial metadata extraction endpoints.

The extract endpoint is the quick path used while a user fills in the
metadata form: it takes one GeoJSON or shapefile, returns the structural
metadata and inferred record fields, and keeps nothing on disk.
"""

from __future__ import annotations

import dataclasses
import pathlib
import shutil
import tempfile
from typing import Any

import fastapi
from fastapi import concurrency, encoders

from geoingest.api import ingest
from geoingest.core import capabilities, config
from geoingest.services import geospatial_extractor

router = fastapi.APIRouter(prefix="/api/geospatial", tags=["geospatial"])


def _get_extractor(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    tools: capabilities.ToolCapabilities = fastapi.Depends(  # noqa: B008
        capabilities.get_capabilities
    ),
) -> geospatial_extractor.GeospatialInfoExtractor:
    return geospatial_extractor.GeospatialInfoExtractor(settings, tools)


@router.get("/capabilities")
async def get_tool_capabilities(
    tools: capabilities.ToolCapabilities = fastapi.Depends(  # noqa: B008
        capabilities.get_capabilities
    ),
) -> dict[str, bool]:
    """Report which optional command-line tools were detected."""
    return dataclasses.asdict(tools)


@router.post("/extract")
async def extract_geospatial(
    file: fastapi.UploadFile,
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
    extractor: geospatial_extractor.GeospatialInfoExtractor = fastapi.Depends(  # noqa: B008
        _get_extractor
    ),
) -> dict[str, Any]:
    """Extract geospatial metadata from one uploaded file.

    Args:
        file: A .geojson, .json or .shp file from multipart form data.
        settings: Application settings (injected via FastAPI Depends).
        extractor: Geospatial extractor (injected via FastAPI Depends).

    Returns:
        The GeospatialInfo as a dictionary.

    Raises:
        HTTPException: 400 with ``{"kind", "message"}`` when no metadata
            can be extracted, 413 when the file is too large.
    """
    settings.work_dir.mkdir(parents=True, exist_ok=True)
    scratch = pathlib.Path(
        tempfile.mkdtemp(prefix="extract-", dir=settings.work_dir)
    )
    try:
        upload = ingest._save_upload(
            file, scratch, settings.max_upload_size_bytes
        )
        result = await concurrency.run_in_threadpool(
            extractor.extract, upload.stored_path
        )
    finally:
        shutil.rmtree(scratch)

    if not result.success or result.data is None:
        raise fastapi.HTTPException(
            status_code=400,
            detail={"kind": result.error_kind, "message": result.error},
        )
    data: dict[str, Any] = encoders.jsonable_encoder(
        dataclasses.asdict(result.data)
    )
    return data
