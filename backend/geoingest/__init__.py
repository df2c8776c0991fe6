"""Geospatial upload ingestion service.

This package turns user uploads (GeoJSON files, ESRI shapefile component
sets and zip/rar archives of either) into the structural metadata that
populates a dataset metadata record: feature count, geometry type, bounding
box, coordinate system and attribute schema.

- Classifies uploads by extension and rejects unknown formats early
- Extracts archives with the native tool first and a library fallback,
  refusing entries that would escape the extraction directory
- Rejects incomplete shapefile component sets with a precise reason
- Reads metadata with GDAL's ogrinfo, or parses GeoJSON directly when
  GDAL is not installed

See module docstrings for details on each step.
"""
