"""Archive extraction with a native-tool to library fallback chain.

Uploaded zip and rar archives are unpacked by an ordered list of strategies:
the platform's command-line tool first (``unzip`` / ``unrar``, bounded by
the command timeout), then the in-process library (:mod:`zipfile` /
:mod:`rarfile`). The first strategy that yields at least one file wins.
Each strategy returns a StrategyAttempt instead of raising, so the result
records exactly what was tried and why it failed.

Member names are checked before anything is written, and the extracted tree
is checked again afterwards, so that no entry can land outside the
destination directory (zip-slip).

Example:
    >>> from geoingest.core import capabilities, config
    >>> from geoingest.services import archive_extractor

    >>> extractor = archive_extractor.ArchiveExtractor(
    ...     config.get_settings(), capabilities.get_capabilities()
    ... )
    >>> result = extractor.extract(Path("parcel.zip"), Path("/tmp/x"))
    >>> result.success, result.strategy_used
    (True, <ExtractionStrategyKind.NATIVE_TOOL: 'native_tool'>)
"""

from __future__ import annotations

import logging
import pathlib
import shutil
import zipfile
from typing import TYPE_CHECKING, Protocol

import rarfile

from geoingest import errors, models
from geoingest.services import format_classifier
from geoingest.utils import command_helpers

if TYPE_CHECKING:
    from collections.abc import Sequence

    from geoingest.core import capabilities, config

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = frozenset({"__MACOSX"})


class ArchiveTraversalError(Exception):
    """An archive entry resolves outside the destination directory."""


class ExtractionStrategy(Protocol):
    kind: models.ExtractionStrategyKind

    def extract(
        self,
        archive_path: pathlib.Path,
        archive_type: str,
        dest_dir: pathlib.Path,
    ) -> models.StrategyAttempt: ...


def _is_within(path: pathlib.Path, root: pathlib.Path) -> bool:
    return path == root or path.is_relative_to(root)


def unsafe_member(name: str, dest_dir: pathlib.Path) -> bool:
    """Whether an archive member name would escape dest_dir."""
    normalized = name.replace("\\", "/")
    if (
        normalized.startswith("/")
        or pathlib.PureWindowsPath(name).drive
        or "\x00" in normalized
    ):
        return True
    root = dest_dir.resolve()
    return not _is_within((root / normalized).resolve(), root)


def list_members(archive_path: pathlib.Path, archive_type: str) -> list[str]:
    """Read member names without extracting anything.

    Raises:
        zipfile.BadZipFile, rarfile.Error, OSError: if the archive cannot
            be read by the library.
    """
    if archive_type == "zip":
        with zipfile.ZipFile(archive_path) as zf:
            return zf.namelist()
    with rarfile.RarFile(str(archive_path)) as rf:
        return rf.namelist()


def collect_files(dest_dir: pathlib.Path) -> tuple[pathlib.Path, ...]:
    """List regular files under dest_dir sorted by relative path.

    Directory entries and macOS resource-fork folders are skipped.

    Raises:
        ArchiveTraversalError: if any file or symlink resolves outside
            dest_dir.
    """
    root = dest_dir.resolve()
    files: list[pathlib.Path] = []
    for path in dest_dir.rglob("*"):
        relative = path.relative_to(dest_dir)
        if IGNORED_DIRECTORIES.intersection(relative.parts):
            continue
        if path.is_symlink() or path.is_file():
            if not _is_within(path.resolve(), root):
                raise ArchiveTraversalError(
                    f"{relative.as_posix()} resolves outside the "
                    "extraction directory"
                )
        if path.is_file():
            files.append(path)
    return tuple(sorted(files, key=lambda p: p.relative_to(dest_dir).as_posix()))


class NativeToolStrategy:
    """Extract with ``unzip`` or ``unrar`` when the probe found them."""

    kind = models.ExtractionStrategyKind.NATIVE_TOOL

    def __init__(
        self,
        settings: config.Settings,
        tools: capabilities.ToolCapabilities,
    ) -> None:
        self.settings = settings
        self.tools = tools

    def _command(
        self, archive_path: pathlib.Path, archive_type: str, dest: pathlib.Path
    ) -> tuple[bool, list[str]]:
        if archive_type == "zip":
            return self.tools.unzip, [
                self.settings.unzip_command,
                "-o",
                "-qq",
                str(archive_path),
                "-d",
                str(dest),
            ]
        return self.tools.unrar, [
            self.settings.unrar_command,
            "x",
            "-o+",
            "-y",
            "-idq",
            str(archive_path),
            f"{dest}/",
        ]

    def extract(
        self,
        archive_path: pathlib.Path,
        archive_type: str,
        dest_dir: pathlib.Path,
    ) -> models.StrategyAttempt:
        available, command = self._command(archive_path, archive_type, dest_dir)
        if not available:
            return models.StrategyAttempt(
                self.kind, False, f"{command[0]} is not available"
            )
        try:
            command_helpers.run_command(
                command,
                timeout=self.settings.command_timeout_seconds,
                max_output_bytes=self.settings.max_command_output_bytes,
            )
        except command_helpers.CommandError as exc:
            return models.StrategyAttempt(self.kind, False, f"{command[0]}: {exc}")
        return models.StrategyAttempt(self.kind, True, command[0])


class LibraryStrategy:
    """Extract in-process with zipfile or rarfile."""

    kind = models.ExtractionStrategyKind.LIBRARY

    def extract(
        self,
        archive_path: pathlib.Path,
        archive_type: str,
        dest_dir: pathlib.Path,
    ) -> models.StrategyAttempt:
        try:
            if archive_type == "zip":
                with zipfile.ZipFile(archive_path) as zf:
                    zf.extractall(dest_dir)
                library = "zipfile"
            else:
                with rarfile.RarFile(str(archive_path)) as rf:
                    rf.extractall(str(dest_dir))
                library = "rarfile"
        except (
            zipfile.BadZipFile,
            rarfile.Error,
            OSError,
            RuntimeError,
            NotImplementedError,
            EOFError,
        ) as exc:
            return models.StrategyAttempt(
                self.kind, False, f"{type(exc).__name__}: {exc}"
            )
        return models.StrategyAttempt(self.kind, True, library)


def _discard_new_entries(
    dest_dir: pathlib.Path, before: set[pathlib.Path]
) -> None:
    for path in sorted(dest_dir.rglob("*"), reverse=True):
        if path in before:
            continue
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)


class ArchiveExtractor:
    """Runs the extraction strategy chain for one archive at a time.

    Instances hold no per-call state, so one extractor may serve several
    archives concurrently as long as each gets its own destination.
    """

    def __init__(
        self,
        settings: config.Settings,
        tools: capabilities.ToolCapabilities,
        strategies: Sequence[ExtractionStrategy] | None = None,
    ) -> None:
        self.settings = settings
        self.strategies: list[ExtractionStrategy] = list(
            strategies
            if strategies is not None
            else (NativeToolStrategy(settings, tools), LibraryStrategy())
        )

    @staticmethod
    def _failure(
        archive_path: pathlib.Path,
        kind: errors.ErrorKind,
        detail: str,
        attempts: Sequence[models.StrategyAttempt] = (),
    ) -> models.ExtractionResult:
        logger.warning("Extraction of %s failed: %s", archive_path.name, detail)
        return models.ExtractionResult(
            extracted_files=(),
            strategy_used=None,
            success=False,
            error_detail=f"Could not extract {archive_path.name}: {detail}",
            error_kind=str(kind),
            attempts=tuple(attempts),
        )

    def extract(
        self,
        archive_path: pathlib.Path,
        dest_dir: pathlib.Path,
        archive_type: str | None = None,
    ) -> models.ExtractionResult:
        """Extract an archive into dest_dir.

        Args:
            archive_path: The archive file.
            dest_dir: Destination directory, created if missing.
            archive_type: "zip" or "rar"; taken from the extension of
                archive_path when omitted.

        Returns:
            ExtractionResult. ``success`` is False when no strategy
            produced files, when the archive type is unsupported, or when
            any entry would escape dest_dir.
        """
        archive_type = archive_type or format_classifier.archive_kind(
            archive_path
        )
        if archive_type is None:
            return self._failure(
                archive_path,
                errors.ErrorKind.UNSUPPORTED_ARCHIVE,
                f"unsupported archive type "
                f"'{format_classifier.extension_of(archive_path)}'",
            )
        dest_dir.mkdir(parents=True, exist_ok=True)

        try:
            members = list_members(archive_path, archive_type)
        except (zipfile.BadZipFile, rarfile.Error, OSError) as exc:
            logger.info(
                "Could not pre-scan %s (%s); relying on post-extraction check",
                archive_path.name,
                exc,
            )
            members = []
        unsafe = [name for name in members if unsafe_member(name, dest_dir)]
        if unsafe:
            return self._failure(
                archive_path,
                errors.ErrorKind.PATH_TRAVERSAL,
                f"entries escape the extraction directory: {', '.join(unsafe)}",
            )

        attempts: list[models.StrategyAttempt] = []
        for strategy in self.strategies:
            before = set(dest_dir.rglob("*"))
            attempt = strategy.extract(archive_path, archive_type, dest_dir)
            if attempt.success:
                try:
                    files = collect_files(dest_dir)
                except ArchiveTraversalError as exc:
                    _discard_new_entries(dest_dir, before)
                    attempts.append(
                        models.StrategyAttempt(strategy.kind, False, str(exc))
                    )
                    return self._failure(
                        archive_path,
                        errors.ErrorKind.PATH_TRAVERSAL,
                        str(exc),
                        attempts,
                    )
                if files:
                    attempts.append(
                        models.StrategyAttempt(
                            strategy.kind, True, attempt.detail, files
                        )
                    )
                    logger.info(
                        "Extracted %d files from %s using %s",
                        len(files),
                        archive_path.name,
                        strategy.kind,
                    )
                    return models.ExtractionResult(
                        extracted_files=files,
                        strategy_used=strategy.kind,
                        success=True,
                        attempts=tuple(attempts),
                    )
                attempt = models.StrategyAttempt(
                    strategy.kind, False, "no files extracted"
                )
            attempts.append(attempt)
            _discard_new_entries(dest_dir, before)
            logger.info(
                "%s strategy failed for %s: %s",
                strategy.kind,
                archive_path.name,
                attempt.detail,
            )

        kind = (
            errors.ErrorKind.EMPTY_ARCHIVE
            if any(a.detail == "no files extracted" for a in attempts)
            else errors.ErrorKind.EXTRACTION_FAILED
        )
        detail = "; ".join(f"{a.strategy}: {a.detail}" for a in attempts)
        return self._failure(
            archive_path, kind, detail or "no extraction strategy", attempts
        )
