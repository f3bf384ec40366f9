"""Configuration models."""

import hashlib
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, validator


def default_download_dir() -> str:
    """User's Downloads folder, falling back to the working directory."""
    home = os.environ.get("USERPROFILE") if os.name == "nt" else os.environ.get("HOME")
    if home:
        downloads = Path(home) / "Downloads"
        if downloads.is_dir():
            return str(downloads)
    return str(Path.cwd())


class DownloadConfig(BaseModel):
    """Download and verification settings."""
    directory: str = Field(default_factory=default_download_dir)
    chunk_size: int = Field(default=64 * 1024, ge=1024)
    progress_step: int = Field(default=1024 * 1024, ge=1)
    checksum_algorithm: str = Field(default="md5")

    @validator("checksum_algorithm")
    def validate_checksum_algorithm(cls, v):
        """Validate the hash algorithm name."""
        name = v.lower()
        if name not in hashlib.algorithms_available:
            raise ValueError(f"Unknown checksum algorithm: {v}")
        # shake_* need an explicit output length
        if hashlib.new(name).digest_size == 0:
            raise ValueError(f"Checksum algorithm {v} has no fixed digest size")
        return name


class HttpConfig(BaseModel):
    """HTTP client settings."""
    timeout: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default="getie/1.0")


class LoggingConfig(BaseModel):
    """Logging settings."""
    level: str = Field(default="INFO")

    @validator("level")
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()


class ToolsConfig(BaseModel):
    """Executable names or paths of the hypervisor tools."""
    vboxmanage: str = Field(default="vboxmanage")
    ovftool: str = Field(default="ovftool")
    vmrun: str = Field(default="vmrun")
    powershell: str = Field(default="powershell")
    prlsrvctl: str = Field(default="prlsrvctl")
    prlctl: str = Field(default="prlctl")
    timeout: Optional[int] = Field(default=None, ge=1, description="Seconds per tool call")


class GetIEConfig(BaseModel):
    """Main configuration model."""
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)

    class Config:
        """Pydantic config."""
        extra = "ignore"
