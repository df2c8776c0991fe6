"""Suggested metadata-record fields inferred from extracted geospatial info.

The values produced here pre-fill the metadata form downstream; users are
expected to review them. Topic categories follow the ISO 19115
MD_TopicCategoryCode list and are chosen from keyword families matched
against attribute names, in English and Indonesian.
"""

from __future__ import annotations

import dataclasses
import re
from typing import TYPE_CHECKING

from geoingest.services import format_classifier

if TYPE_CHECKING:
    import pathlib

    from geoingest import models

DEFAULT_TOPIC_CATEGORY = "planning"
MAX_KEYWORDS = 10
GENERIC_KEYWORDS = ("geospatial", "spatial", "gis")
IGNORED_KEYWORDS = frozenset({"id", "no", "num", "code"})

# Checked in order; the first family with a matching attribute name wins.
TOPIC_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("boundaries", ("prov", "kab", "kec", "desa", "admin", "boundary")),
    (
        "transportation",
        ("jalan", "road", "street", "highway", "rail", "transport"),
    ),
    (
        "inlandWaters",
        ("sungai", "river", "danau", "lake", "laut", "sea", "water"),
    ),
    (
        "elevation",
        ("elevasi", "ketinggian", "altitude", "dem", "terrain", "topo"),
    ),
    (
        "climatology",
        (
            "suhu",
            "temperature",
            "curah",
            "hujan",
            "rainfall",
            "iklim",
            "climate",
        ),
    ),
    (
        "biota",
        ("vegetasi", "tanaman", "forest", "hutan", "biota", "habitat"),
    ),
    (
        "society",
        ("penduduk", "population", "demografi", "society", "social"),
    ),
    (
        "economy",
        ("ekonomi", "economy", "pdrb", "gdp", "industri", "industry"),
    ),
    ("health", ("kesehatan", "health", "rumah sakit", "hospital", "medis")),
    ("utilities", ("utilitas", "utility", "listrik", "electric", "air")),
)

ATTRIBUTE_HINTS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("nama", "name"), "feature name or label"),
    (("prov", "province"), "province name"),
    (("kab", "regency"), "regency name"),
    (("kec", "district"), "district name"),
    (("desa", "village"), "village name"),
    (("luas", "area"), "area in area units"),
    (("panjang", "length"), "length in length units"),
    (("koordinat", "coord"), "geographic coordinate"),
)


def title_from_name(name: str) -> str:
    words = re.sub(r"[_-]+", " ", name).split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def infer_topic_category(attributes: list[models.AttributeField]) -> str:
    names = [attr.name.lower() for attr in attributes]
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in name for name in names for keyword in keywords):
            return topic
    return DEFAULT_TOPIC_CATEGORY


def extract_descriptive_keywords(
    attributes: list[models.AttributeField], layer_name: str = ""
) -> str:
    keywords: dict[str, None] = {}
    for word in re.split(r"[\s_-]+", layer_name.lower()):
        if len(word) > 2:
            keywords[word] = None
    for attr in attributes:
        for word in re.split(r"[\s_-]+", attr.name.lower()):
            if len(word) > 2 and word not in IGNORED_KEYWORDS:
                keywords[word] = None
    for word in GENERIC_KEYWORDS:
        keywords[word] = None
    return ", ".join(list(keywords)[:MAX_KEYWORDS])


def describe_attribute(attr: models.AttributeField) -> str:
    name = attr.name.lower()
    if "id" in name or name in ("fid", "gid"):
        hint = "unique feature identifier"
    else:
        hint = next(
            (
                text
                for needles, text in ATTRIBUTE_HINTS
                if any(needle in name for needle in needles)
            ),
            "data attribute",
        )
    return f"{attr.name}: {attr.type} - {hint}"


def format_extent(box: models.BoundingBox) -> str:
    def lon(value: float) -> str:
        return f"{abs(value):.4f}°{'E' if value >= 0 else 'W'}"

    def lat(value: float) -> str:
        return f"{abs(value):.4f}°{'N' if value >= 0 else 'S'}"

    return (
        f"{lon(box.min_x)}, {lon(box.max_x)}, "
        f"{lat(box.min_y)}, {lat(box.max_y)}"
    )


def estimate_spatial_resolution(info: models.GeospatialInfo) -> str:
    """Rough map scale from feature density over the bounding box."""
    box = info.bounding_box
    area = abs(box.max_x - box.min_x) * abs(box.max_y - box.min_y)
    if area == 0:
        return "1:1.000" if info.feature_count else "1:100.000"
    density = info.feature_count / area
    if density > 100:
        return "1:1.000"
    if density > 10:
        return "1:10.000"
    if density > 1:
        return "1:25.000"
    return "1:100.000"


def infer_abstract(info: models.GeospatialInfo) -> str:
    geom = info.geometry_type.lower()
    if "point" in geom:
        kind = "point "
    elif "line" in geom:
        kind = "line "
    elif "polygon" in geom:
        kind = "polygon "
    else:
        kind = ""
    abstract = (
        f"Geospatial {kind}dataset containing "
        f"{info.feature_count:,} {kind}features"
    )
    if info.coordinate_system:
        abstract += f" in the {info.coordinate_system} coordinate system"
    return abstract + ". The data can be used for spatial analysis and mapping."


def infer_metadata_fields(
    info: models.GeospatialInfo, file_path: pathlib.Path
) -> models.GeospatialInfo:
    """Return a copy of ``info`` with the inferred_* fields filled in."""
    return dataclasses.replace(
        info,
        inferred_title=title_from_name(info.layer_name or file_path.stem),
        inferred_abstract=infer_abstract(info),
        inferred_topic_category=infer_topic_category(info.attributes),
        inferred_descriptive_keywords=extract_descriptive_keywords(
            info.attributes, info.layer_name
        ),
        inferred_attribute_description=", ".join(
            describe_attribute(attr) for attr in info.attributes
        ),
        inferred_extent=format_extent(info.bounding_box),
        inferred_spatial_resolution=estimate_spatial_resolution(info),
        inferred_resource_format=format_classifier.get_file_format(file_path),
    )
