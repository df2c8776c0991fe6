"""Completeness check for ESRI shapefile component sets.

A shapefile is only usable when its three core files (.shp geometry, .shx
index, .dbf attributes) travel together. Auxiliary files (.prj, .cpg, .sbn,
.sbx) are optional but meaningless on their own. validate_extensions() takes
the set of extensions found in one archive (or one batch of standalone
uploads) and returns a verdict; a set with no shapefile files at all is
accepted because it simply is not a shapefile upload.

Example:
    >>> from geoingest.services import shapefile_validator
    >>> verdict = shapefile_validator.validate_extensions({".shp", ".cpg"})
    >>> verdict.accepted, verdict.error_kind, verdict.missing_files
    (False, 'incomplete_shapefile_with_auxiliary', ['.shx', '.dbf'])
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from geoingest import errors, models
from geoingest.services import format_classifier

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

CORE = format_classifier.SHAPEFILE_CORE_EXTENSIONS
AUXILIARY = format_classifier.SHAPEFILE_AUXILIARY_EXTENSIONS

_REQUIRED = "A shapefile requires .shp, .shx and .dbf files."
_MESSAGES = {
    errors.ErrorKind.AUX_WITHOUT_CORE: (
        "Shapefile support files (.prj, .cpg, .sbn, .sbx) cannot be "
        "uploaded without the main files (.shp, .shx, .dbf)."
    ),
    errors.ErrorKind.INCOMPLETE_SHAPEFILE_WITH_AUXILIARY: (
        "Only .shp and support files were found; .shx and .dbf are "
        f"missing. {_REQUIRED}"
    ),
    errors.ErrorKind.INCOMPLETE_SHAPEFILE: (
        f"Only a .shp file was found; .shx and .dbf are missing. {_REQUIRED}"
    ),
    errors.ErrorKind.MISSING_SHX: f"The .shx file was not found. {_REQUIRED}",
    errors.ErrorKind.MISSING_DBF: f"The .dbf file was not found. {_REQUIRED}",
    errors.ErrorKind.SHX_OR_DBF_WITHOUT_SHP: (
        f".shx or .dbf files were found without a .shp file. {_REQUIRED}"
    ),
}


def _reject_kind(
    has_shp: bool, has_shx: bool, has_dbf: bool, has_aux: bool
) -> errors.ErrorKind | None:
    if has_shp and has_shx and has_dbf:
        return None
    if not has_shp:
        if has_shx or has_dbf:
            return errors.ErrorKind.SHX_OR_DBF_WITHOUT_SHP
        return errors.ErrorKind.AUX_WITHOUT_CORE if has_aux else None
    if not has_shx and not has_dbf:
        if has_aux:
            return errors.ErrorKind.INCOMPLETE_SHAPEFILE_WITH_AUXILIARY
        return errors.ErrorKind.INCOMPLETE_SHAPEFILE
    if not has_shx:
        return errors.ErrorKind.MISSING_SHX
    return errors.ErrorKind.MISSING_DBF


def validate_extensions(
    extensions: Iterable[str],
) -> models.ShapefileValidationVerdict:
    """Decide whether a set of file extensions is an acceptable upload.

    Args:
        extensions: Extensions such as ".SHP" or "dbf"; normalized to
            lower case with a leading dot.

    Returns:
        ShapefileValidationVerdict. Rejections carry ``error_kind``,
        ``missing_files`` (in .shp, .shx, .dbf order) and a message.
    """
    present = {
        ext.lower() if ext.startswith(".") else f".{ext.lower()}"
        for ext in extensions
        if ext
    }
    core = tuple(ext for ext in CORE if ext in present)
    aux = tuple(ext for ext in AUXILIARY if ext in present)

    kind = _reject_kind(
        ".shp" in present, ".shx" in present, ".dbf" in present, bool(aux)
    )
    if kind is None:
        return models.ShapefileValidationVerdict(
            accepted=True,
            present_core_extensions=core,
            present_auxiliary_extensions=aux,
        )
    return models.ShapefileValidationVerdict(
        accepted=False,
        present_core_extensions=core,
        present_auxiliary_extensions=aux,
        error_kind=str(kind),
        missing_core=tuple(ext for ext in CORE if ext not in present),
        message=_MESSAGES[kind],
    )


def validate_files(
    paths: Iterable[str | pathlib.Path],
) -> models.ShapefileValidationVerdict:
    """Validate a collection of filenames by their extensions."""
    return validate_extensions(
        format_classifier.extension_of(path) for path in paths
    )
