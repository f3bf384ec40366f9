"""Image descriptor and pipeline artifact models."""

import posixpath
from pathlib import Path
from typing import List
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, Field, validator


def _url_file_name(url: str) -> str:
    return unquote(posixpath.basename(urlsplit(url).path))


class InstallSpec(BaseModel):
    """Catalog key selecting one image."""
    platform: str = Field(..., description="Host platform, e.g. Linux")
    hypervisor: str = Field(..., description="Backend name, e.g. VirtualBox")
    browser_os: str = Field(..., description="Browser and OS label")

    class Config:
        """Pydantic config."""
        frozen = True


class ImageDescriptor(BaseModel):
    """Where to download one archive and its published checksum."""
    file_url: str = Field(..., description="Archive URL")
    checksum_url: str = Field(..., description="URL of the published checksum")

    class Config:
        """Pydantic config."""
        frozen = True

    @validator("file_url")
    def validate_file_url(cls, v):
        """Require a URL path ending in a plain file name."""
        name = _url_file_name(v)
        if not name:
            raise ValueError(f"URL has no file name: {v}")
        # Decoded separators would place the archive outside the download directory
        if "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"URL file name is not a plain file name: {name}")
        return v

    @property
    def archive_name(self) -> str:
        """Base file name of the archive."""
        return _url_file_name(self.file_url)


class ImageSpec(BaseModel):
    """Named image entry from the images configuration."""
    name: str = Field(..., description="Image name")
    platform: str = Field(default="All")
    hypervisor: str = Field(..., description="Backend name")
    browser_os: str = Field(default="")
    file_url: str = Field(..., description="Archive URL")
    checksum_url: str = Field(..., description="URL of the published checksum")

    class Config:
        """Pydantic config."""
        extra = "ignore"

    @property
    def install_spec(self) -> InstallSpec:
        return InstallSpec(
            platform=self.platform,
            hypervisor=self.hypervisor,
            browser_os=self.browser_os,
        )

    @property
    def descriptor(self) -> ImageDescriptor:
        return ImageDescriptor(file_url=self.file_url, checksum_url=self.checksum_url)


class LocalArchive(BaseModel):
    """Downloaded archive whose checksum has been verified."""
    path: Path
    expected_checksum: str
    downloaded: bool = Field(default=False, description="False when an existing file was reused")


class ExtractionResult(BaseModel):
    """Outcome of unpacking an archive."""
    destination_dir: Path
    entry_point_path: Path
    extracted: List[Path] = Field(default_factory=list)
    skipped: List[Path] = Field(default_factory=list)
