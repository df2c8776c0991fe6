"""Bounding box computation over nested GeoJSON coordinate arrays.

GeoJSON nests positions to a fixed, shallow depth (MultiPolygon is four
levels deep). coordinate_bounds() walks any such structure and reduces every
position it finds to (min_x, min_y, max_x, max_y). A position is a sequence
whose first two items are finite real numbers; anything else that is not a
sequence of positions (strings, objects, NaN, short arrays, nesting deeper
than MAX_DEPTH) is ignored.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Any

from geoingest import models

MAX_DEPTH = 8

Bounds = tuple[float, float, float, float]


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_position(node: Any) -> bool:
    return (
        isinstance(node, list | tuple)
        and len(node) >= 2
        and _is_number(node[0])
        and _is_number(node[1])
    )


def _merge(bounds: Bounds | None, x: float, y: float) -> Bounds:
    if bounds is None:
        return (x, y, x, y)
    return (
        min(bounds[0], x),
        min(bounds[1], y),
        max(bounds[2], x),
        max(bounds[3], y),
    )


def coordinate_bounds(
    coordinates: Any,
    bounds: Bounds | None = None,
    depth: int = 0,
) -> Bounds | None:
    """Extend ``bounds`` with every position found in ``coordinates``.

    Args:
        coordinates: A position or arbitrarily nested lists of positions.
        bounds: Bounds accumulated so far, or None.
        depth: Current nesting level; nodes below MAX_DEPTH are ignored.

    Returns:
        The extended bounds, or None when no position has been seen.

    Example:
        >>> coordinate_bounds([[[0, 0], [2, 1]], [[-1, 5], [1, 1]]])
        (-1.0, 0.0, 2.0, 5.0)
    """
    if _is_position(coordinates):
        return _merge(bounds, float(coordinates[0]), float(coordinates[1]))
    if depth >= MAX_DEPTH or not isinstance(coordinates, list | tuple):
        return bounds
    for child in coordinates:
        bounds = coordinate_bounds(child, bounds, depth + 1)
    return bounds


def geometry_coordinates(geometry: Any, depth: int = 0) -> Iterable[Any]:
    """Yield the coordinate arrays of a geometry object.

    GeometryCollection members are visited recursively; geometries
    without coordinates yield nothing.
    """
    if not isinstance(geometry, dict) or depth >= MAX_DEPTH:
        return
    if "coordinates" in geometry:
        yield geometry["coordinates"]
    members = geometry.get("geometries")
    if isinstance(members, list):
        for member in members:
            yield from geometry_coordinates(member, depth + 1)


def bounding_box(geometries: Iterable[Any]) -> models.BoundingBox:
    """Bounding box of all geometries, or the all-zero sentinel."""
    bounds: Bounds | None = None
    for geometry in geometries:
        for coordinates in geometry_coordinates(geometry):
            bounds = coordinate_bounds(coordinates, bounds)
    if bounds is None:
        return models.BoundingBox.empty()
    return models.BoundingBox(*bounds)
