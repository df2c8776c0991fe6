"""Tests for shapefile component completeness checks.

The decision table is checked row by row, then every combination of the
seven shapefile extensions is checked against the acceptance rule: a set is
accepted exactly when it holds all three core files, or holds no shapefile
file at all.
"""

from __future__ import annotations

import itertools

import pytest

from geoingest.services import shapefile_validator

ALL_EXTENSIONS = shapefile_validator.CORE + shapefile_validator.AUXILIARY


@pytest.mark.parametrize(
    ("extensions", "kind", "missing"),
    [
        ({".prj"}, "aux_without_core", [".shp", ".shx", ".dbf"]),
        ({".cpg", ".sbn"}, "aux_without_core", [".shp", ".shx", ".dbf"]),
        (
            {".shp", ".prj"},
            "incomplete_shapefile_with_auxiliary",
            [".shx", ".dbf"],
        ),
        ({".shp"}, "incomplete_shapefile", [".shx", ".dbf"]),
        ({".shp", ".dbf"}, "missing_shx", [".shx"]),
        ({".shp", ".dbf", ".prj"}, "missing_shx", [".shx"]),
        ({".shp", ".shx"}, "missing_dbf", [".dbf"]),
        ({".shx"}, "shx_or_dbf_without_shp", [".shp", ".dbf"]),
        ({".shx", ".dbf", ".prj"}, "shx_or_dbf_without_shp", [".shp"]),
    ],
)
def test_rejections(
    extensions: set[str], kind: str, missing: list[str]
) -> None:
    verdict = shapefile_validator.validate_extensions(extensions)
    assert not verdict.accepted
    assert verdict.error_kind == kind
    assert verdict.missing_files == missing
    assert verdict.message


def test_complete_shapefile_is_accepted() -> None:
    verdict = shapefile_validator.validate_extensions(
        {".shp", ".shx", ".dbf", ".prj", ".cpg"}
    )
    assert verdict.accepted
    assert verdict.error_kind is None
    assert verdict.present_core_extensions == (".shp", ".shx", ".dbf")
    assert verdict.present_auxiliary_extensions == (".prj", ".cpg")


def test_non_shapefile_set_is_accepted() -> None:
    verdict = shapefile_validator.validate_extensions({".geojson", ".txt"})
    assert verdict.accepted
    assert verdict.present_core_extensions == ()


def test_empty_set_is_accepted() -> None:
    assert shapefile_validator.validate_extensions([]).accepted


def test_extensions_are_normalized() -> None:
    verdict = shapefile_validator.validate_extensions(["SHP", ".Shx", "dbf"])
    assert verdict.accepted


def test_validate_files_uses_extensions() -> None:
    verdict = shapefile_validator.validate_files(
        ["data/Parcel.SHP", "data/Parcel.prj", "readme.txt"]
    )
    assert verdict.error_kind == "incomplete_shapefile_with_auxiliary"


def test_every_combination_follows_acceptance_rule() -> None:
    for size in range(len(ALL_EXTENSIONS) + 1):
        for combo in itertools.combinations(ALL_EXTENSIONS, size):
            present = set(combo)
            verdict = shapefile_validator.validate_extensions(present)
            complete = set(shapefile_validator.CORE) <= present
            expected = complete or not present
            assert verdict.accepted is expected, combo
            if not verdict.accepted:
                assert verdict.missing_files == [
                    ext for ext in shapefile_validator.CORE if ext not in present
                ]
