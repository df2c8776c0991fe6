"""Tests for bounding box computation over GeoJSON coordinates."""

from __future__ import annotations

import math

from geoingest import models
from geoingest.services import bbox


def test_point() -> None:
    assert bbox.coordinate_bounds([106.8, -6.2]) == (106.8, -6.2, 106.8, -6.2)


def test_nested_polygon() -> None:
    polygon = [[[0, 0], [4, 0], [4, 3], [0, 3], [0, 0]]]
    assert bbox.coordinate_bounds(polygon) == (0.0, 0.0, 4.0, 3.0)


def test_multipolygon_extends_existing_bounds() -> None:
    multipolygon = [[[[1, 1], [2, 2], [1, 2], [1, 1]]]]
    bounds = bbox.coordinate_bounds(multipolygon, (-5.0, 0.0, 0.0, 0.5))
    assert bounds == (-5.0, 0.0, 2.0, 2.0)


def test_positions_with_elevation() -> None:
    assert bbox.coordinate_bounds([[1, 2, 300], [3, 4, 500]]) == (
        1.0,
        2.0,
        3.0,
        4.0,
    )


def test_invalid_nodes_are_ignored() -> None:
    coordinates = [
        [1, 1],
        ["a", "b"],
        [math.nan, 2],
        [True, False],
        [7],
        {"x": 9},
        [2, 3],
    ]
    assert bbox.coordinate_bounds(coordinates) == (1.0, 1.0, 2.0, 3.0)


def test_nothing_found_returns_none() -> None:
    assert bbox.coordinate_bounds([]) is None
    assert bbox.coordinate_bounds("not coordinates") is None


def test_depth_limit() -> None:
    deep: list = [5, 5]
    for _ in range(bbox.MAX_DEPTH + 2):
        deep = [deep]
    assert bbox.coordinate_bounds(deep) is None


def test_bounding_box_with_geometry_collection() -> None:
    geometries = [
        {"type": "Point", "coordinates": [10, 20]},
        {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Point", "coordinates": [-1, 5]},
                {"type": "LineString", "coordinates": [[0, 0], [3, 30]]},
            ],
        },
    ]
    assert bbox.bounding_box(geometries) == models.BoundingBox(
        -1.0, 0.0, 10.0, 30.0
    )


def test_bounding_box_without_geometry_is_empty() -> None:
    box = bbox.bounding_box([{"type": "Point", "coordinates": []}, None])
    assert box.is_empty
    assert box == models.BoundingBox(0.0, 0.0, 0.0, 0.0)
