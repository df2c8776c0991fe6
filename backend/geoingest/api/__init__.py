"""API router subpackage for the ingestion service.

Submodules:
    - ingest: Multi-file upload endpoint running the full pipeline.
    - geospatial: Single-file metadata extraction and tool capabilities.

Each module exposes its own APIRouter for composition in the application's
main FastAPI instance.
"""
