"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
storage and working directories, the names of the external command-line
tools the pipeline may shell out to, subprocess limits, upload size limits
and logging level.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from geoingest.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.command_timeout_seconds)
        30.0

    Environment variables can override defaults:
        >>> OGRINFO_COMMAND=/opt/gdal/bin/ogrinfo
        >>> WORK_DIR=/var/tmp/geoingest
        >>> MAX_ARCHIVE_WORKERS=8
"""

import functools
import pathlib

import pydantic_settings


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    Directory paths are automatically created by get_settings() via
    ensure_directories().

    Attributes:
        storage_dir: Directory where uploaded files are persisted.
        work_dir: Root for per-request extraction directories.
        ogrinfo_command: Geometry introspection command (GDAL ``ogrinfo``).
        unzip_command: Native zip extraction command.
        unrar_command: Native rar extraction command.
        command_timeout_seconds: Wall-clock limit for every subprocess.
        max_command_output_bytes: Largest stdout accepted from a subprocess.
        max_upload_size_bytes: Maximum size of a single uploaded file.
        max_archive_workers: Archives extracted concurrently per request.
        allow_origins: List of allowed CORS origins (["*"] allows all).
        log_level: Level for the ``geoingest`` logger.

    Example:
        Create settings with custom values:
            >>> settings = Settings(
            ...     work_dir=Path("/custom/work"),
            ...     command_timeout_seconds=10,
            ... )
            >>> settings.ensure_directories()
    """

    storage_dir: pathlib.Path = pathlib.Path("/tmp/geoingest/uploads")
    work_dir: pathlib.Path = pathlib.Path("/tmp/geoingest/work")
    ogrinfo_command: str = "ogrinfo"
    unzip_command: str = "unzip"
    unrar_command: str = "unrar"
    command_timeout_seconds: float = 30.0
    max_command_output_bytes: int = 10 * 1024 * 1024
    max_upload_size_bytes: int = 100 * 1024 * 1024
    max_archive_workers: int = 4
    allow_origins: list[str] = ["*"]
    log_level: str = "INFO"

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def ensure_directories(self) -> None:
        """Create local directories for uploads and extraction work."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.work_dir.mkdir(parents=True, exist_ok=True)


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with directories initialized.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Directories are created on first
    call. Subsequent calls return the same cached instance.

    Returns:
        Settings instance with all configuration values populated and
        directories ensured to exist.
    """
    settings = Settings()
    settings.ensure_directories()
    return settings
