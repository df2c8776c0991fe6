"""Safe execution wrapper for external command-line utilities.

This module provides a safe interface for executing the command-line tools
the ingestion pipeline depends on (``ogrinfo``, ``unzip``, ``unrar``) as
subprocesses. Every call is bounded by a wall-clock timeout and an output
size cap, and every failure mode surfaces as a CommandError subclass with a
message taken from the command's stderr.

Example:
    Run ogrinfo on a shapefile:
        >>> from geoingest.utils.command_helpers import (
        ...     CommandError,
        ...     run_command,
        ... )

        >>> try:
        ...     result = run_command(
        ...         ["ogrinfo", "-al", "-so", "parcel.shp"],
        ...         timeout=30,
        ...     )
        ... except CommandError as e:
        ...     print(f"Command failed: {e}")
"""

from __future__ import annotations

import dataclasses
import logging
import subprocess
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024


class CommandError(RuntimeError):
    """Exception raised when a subprocess command fails.

    Contains the error message from the failed command's stderr output.
    Raised when a command exits with a non-zero status code; the more
    specific subclasses cover commands that could not run at all.

    Example:
        Handle command failures:
            >>> try:
            ...     run_command(["unzip", "-o", "broken.zip"])
            ... except CommandError as e:
            ...     print(f"unzip failed: {e}")
    """


class CommandNotFoundError(CommandError):
    """The executable does not exist or is not runnable."""


class CommandTimeoutError(CommandError):
    """The command exceeded its wall-clock timeout and was killed."""


class CommandOutputTooLargeError(CommandError):
    """The command produced more output than the configured cap."""


@dataclasses.dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


def run_command(
    command: Iterable[str | pathlib.Path],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
) -> CommandResult:
    """Execute a command and raise on failure.

    Runs a command-line tool as a subprocess with proper error handling.
    Captures both stdout and stderr, and raises CommandError if the command
    cannot be started, times out, exits non-zero, produces more output than
    allowed, or writes only to stderr.

    Args:
        command: Iterable arguments to execute (e.g., ["ogrinfo", "-al", ...]).
        timeout: Seconds before the process is killed.
        max_output_bytes: Largest accepted stdout size in bytes.

    Returns:
        CommandResult with the decoded stdout and stderr.

    Raises:
        CommandNotFoundError: if the executable cannot be found.
        CommandTimeoutError: if the timeout elapses; the child is killed.
        CommandOutputTooLargeError: if stdout exceeds max_output_bytes.
        CommandError: on non-zero exit, or on stderr-only output. The
            exception message contains the stderr output from the command.
    """
    args = [str(part) for part in command]
    logger.debug("Running command: %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        raise CommandNotFoundError(f"Command not found: {args[0]}") from exc
    except PermissionError as exc:
        raise CommandNotFoundError(
            f"Command not executable: {args[0]}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise CommandTimeoutError(
            f"{args[0]} timed out after {timeout:g}s"
        ) from exc

    stdout = result.stdout or ""
    stderr = (result.stderr or "").strip()
    if len(stdout.encode("utf-8", errors="replace")) > max_output_bytes:
        raise CommandOutputTooLargeError(
            f"{args[0]} output exceeded {max_output_bytes} bytes"
        )
    if result.returncode != 0:
        raise CommandError(stderr or "Unknown command failure")
    if stderr and not stdout.strip():
        raise CommandError(stderr)
    if stderr:
        logger.warning("%s reported: %s", args[0], stderr)

    return CommandResult(
        returncode=result.returncode,
        stdout=stdout,
        stderr=stderr,
    )
