"""Resumable archive extraction and entry point selection."""

import asyncio
import logging
import os
import zipfile
import zlib
from pathlib import Path
from typing import Iterable, List, Optional, Union

from getie.backends.registry import BackendRegistry
from getie.errors import (
    AmbiguousEntryPoint,
    ArchiveFormatError,
    EntryPointNotFound,
    FilesystemError,
)
from getie.models.image import ExtractionResult, LocalArchive
from getie.utils.streams import DEFAULT_CHUNK_SIZE, copy_stream


logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


def destination_for(archive_path: Path) -> Path:
    """Extraction directory: the archive path without its final extension."""
    archive_path = Path(archive_path)
    if not archive_path.suffix:
        raise ArchiveFormatError(
            f"Cannot derive extraction directory from {archive_path}: no extension"
        )
    return archive_path.with_suffix("")


def select_entry_point(candidates: Iterable[Path], suffix: str, hypervisor: str) -> Path:
    """Pick the single candidate whose name ends with ``suffix``."""
    matches = list(dict.fromkeys(p for p in candidates if p.name.endswith(suffix)))
    if not matches:
        raise EntryPointNotFound(f"Didn't find a {suffix} file for {hypervisor}")
    if len(matches) > 1:
        names = ", ".join(str(p) for p in matches)
        raise AmbiguousEntryPoint(f"Found several {suffix} files for {hypervisor}: {names}")
    return matches[0]


def _target_path(destination: Path, member: str) -> Path:
    target = destination / member
    root = destination.resolve()
    resolved = target.resolve()
    if resolved != root and root not in resolved.parents:
        raise ArchiveFormatError(f"Archive entry escapes extraction directory: {member}")
    return target


class ArchiveExtractor:
    """Unpacks zip archives, skipping entries already present on disk.

    Entries are written to a temporary ``.part`` file and renamed when
    complete, so a file that exists under its final name is always whole
    and can be skipped on the next run.
    """

    def __init__(self, registry: Optional[BackendRegistry] = None, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """Initialize extractor."""
        self.registry = registry or BackendRegistry()
        self.chunk_size = chunk_size

    async def extract(
        self,
        archive: Union[LocalArchive, Path],
        hypervisor: str,
        destination_dir: Optional[Path] = None,
    ) -> ExtractionResult:
        """Extract ``archive`` and locate the entry point for ``hypervisor``."""
        # Resolve the backend before touching the filesystem
        suffix = self.registry.entry_point_suffix(hypervisor)

        archive_path = archive.path if isinstance(archive, LocalArchive) else Path(archive)
        destination = Path(destination_dir) if destination_dir else destination_for(archive_path)

        return await asyncio.to_thread(
            self._extract, archive_path, destination, suffix, hypervisor
        )

    def _extract(self, archive_path: Path, destination: Path, suffix: str, hypervisor: str) -> ExtractionResult:
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create {destination}: {e}") from e
        logger.info(f"Unpacking data into '{destination}'")

        try:
            zf = zipfile.ZipFile(archive_path)
        except zipfile.BadZipFile as e:
            raise ArchiveFormatError(f"Invalid archive {archive_path}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Cannot open {archive_path}: {e}") from e

        candidates: List[Path] = []
        extracted: List[Path] = []
        skipped: List[Path] = []

        with zf:
            for info in zf.infolist():
                target = _target_path(destination, info.filename)

                if info.is_dir():
                    self._make_dir(target)
                    continue

                if target.exists():
                    logger.info(f"File '{target}' already exists, skip")
                    candidates.append(target)
                    skipped.append(target)
                    continue

                logger.info(f"Unpacking '{info.filename}'")
                self._write_entry(zf, info, target)
                candidates.append(target)
                extracted.append(target)

        entry_point = select_entry_point(candidates, suffix, hypervisor)
        logger.info(f"Entry point for {hypervisor}: {entry_point}")
        return ExtractionResult(
            destination_dir=destination,
            entry_point_path=entry_point,
            extracted=extracted,
            skipped=skipped,
        )

    @staticmethod
    def _make_dir(path: Path):
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create {path}: {e}") from e

    def _write_entry(self, zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path):
        self._make_dir(target.parent)
        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        mode = (info.external_attr >> 16) & 0o777

        try:
            with zf.open(info) as src, open(partial, "wb") as dst:
                copy_stream(src, dst, self.chunk_size)
            if mode:
                os.chmod(partial, mode)
            os.replace(partial, target)
        except (zipfile.BadZipFile, zlib.error, RuntimeError) as e:
            # RuntimeError covers encrypted entries and unsupported compression
            raise ArchiveFormatError(f"Corrupt archive entry {info.filename}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Cannot write {target}: {e}") from e
