"""One-time probe of the external tools available to the pipeline.

The probe runs once per process and produces an immutable ToolCapabilities
value. Components receive that value explicitly instead of reading a module
global, so tests can hand in any combination of available tools.

Example:
    >>> from geoingest.core import capabilities
    >>> caps = capabilities.get_capabilities()
    >>> caps.ogrinfo
    True

    Tests build the value directly:
        >>> caps = capabilities.ToolCapabilities(
        ...     ogrinfo=False, unzip=True, unrar=False
        ... )
"""

from __future__ import annotations

import dataclasses
import functools
import logging
import shutil

from geoingest.core import config
from geoingest.utils import command_helpers

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ToolCapabilities:
    """Which optional command-line tools were found at startup."""

    ogrinfo: bool = False
    unzip: bool = False
    unrar: bool = False

    @classmethod
    def none(cls) -> ToolCapabilities:
        return cls(ogrinfo=False, unzip=False, unrar=False)


def _ogrinfo_available(settings: config.Settings) -> bool:
    """Check ogrinfo by asking it for its version, as GDAL installs vary."""
    try:
        result = command_helpers.run_command(
            [settings.ogrinfo_command, "--version"],
            timeout=settings.command_timeout_seconds,
        )
    except command_helpers.CommandError as exc:
        logger.warning(
            "ogrinfo not available, using fallback extraction: %s", exc
        )
        return False
    logger.info("Detected %s", result.stdout.strip() or "ogrinfo")
    return True


def probe_capabilities(settings: config.Settings) -> ToolCapabilities:
    """Detect the external tools on PATH.

    Args:
        settings: Application settings naming the commands to look for.

    Returns:
        ToolCapabilities describing the detected tools.
    """
    capabilities = ToolCapabilities(
        ogrinfo=_ogrinfo_available(settings),
        unzip=shutil.which(settings.unzip_command) is not None,
        unrar=shutil.which(settings.unrar_command) is not None,
    )
    logger.info("Tool capabilities: %s", capabilities)
    return capabilities


@functools.lru_cache
def get_capabilities() -> ToolCapabilities:
    """Probe once with the application settings and cache the result."""
    return probe_capabilities(config.get_settings())
