"""Pydantic models for configuration and pipeline artifacts."""

from getie.models.config import (
    GetIEConfig,
    DownloadConfig,
    HttpConfig,
    LoggingConfig,
    ToolsConfig,
)
from getie.models.image import (
    ImageDescriptor,
    InstallSpec,
    ImageSpec,
    LocalArchive,
    ExtractionResult,
)

__all__ = [
    "GetIEConfig",
    "DownloadConfig",
    "HttpConfig",
    "LoggingConfig",
    "ToolsConfig",
    "ImageDescriptor",
    "InstallSpec",
    "ImageSpec",
    "LocalArchive",
    "ExtractionResult",
]
