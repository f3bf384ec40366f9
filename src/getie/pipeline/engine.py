"""Pipeline orchestration: fetch, extract, then check, prepare and import."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, List, Optional

import httpx

from getie.backends.base import BaseBackend, ImportOutcome
from getie.backends.registry import BackendRegistry
from getie.errors import (
    AmbiguousEntryPoint,
    EntryPointNotFound,
    FilesystemError,
    GetIEError,
    IntegrityMismatch,
)
from getie.models.config import GetIEConfig
from getie.models.image import ExtractionResult, ImageDescriptor, InstallSpec, LocalArchive
from getie.pipeline.extractor import ArchiveExtractor
from getie.pipeline.fetcher import StreamingFetcher
from getie.pipeline.oracle import IntegrityOracle
from getie.utils.streams import ProgressCallback


logger = logging.getLogger(__name__)


class Stage(Enum):
    """Pipeline stages in execution order."""
    BACKEND = "backend"
    FETCH = "fetch"
    EXTRACT = "extract"
    CHECK = "check"
    PREPARE = "prepare"
    IMPORT = "import"


@dataclass
class StageFailure:
    """Failure of one stage with a hint on how to resume."""
    stage: Stage
    cause: GetIEError
    hint: str

    def __str__(self) -> str:
        return f"{self.stage.value} failed: {self.cause}"


@dataclass
class PipelineResult:
    """Everything a run produced, up to the failing stage."""
    spec: InstallSpec
    descriptor: ImageDescriptor
    archive: Optional[LocalArchive] = None
    extraction: Optional[ExtractionResult] = None
    outcome: Optional[ImportOutcome] = None
    failure: Optional[StageFailure] = None
    completed: List[Stage] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def warnings(self) -> List[str]:
        return list(self.outcome.warnings) if self.outcome else []


def resume_hint(stage: Stage, error: GetIEError, result: PipelineResult) -> str:
    """Tell the user what is left on disk and how to continue."""
    hypervisor = result.spec.hypervisor

    if stage == Stage.BACKEND:
        return "Choose a supported hypervisor: " + ", ".join(BackendRegistry().list_backends())

    if stage == Stage.FETCH:
        if isinstance(error, IntegrityMismatch):
            return (
                f"{error.path} does not match the published checksum. "
                "Inspect or delete it, then re-run to download again."
            )
        if isinstance(error, FilesystemError):
            return "Check that the download directory is writable and has free space, then re-run."
        return (
            "Re-run when the network is available. "
            "Delete any partially downloaded file first, it is not resumed."
        )

    archive = result.archive.path if result.archive else None
    if stage == Stage.EXTRACT:
        if isinstance(error, AmbiguousEntryPoint):
            return f"The archive {archive} has several candidate files for {hypervisor}; import one manually."
        if isinstance(error, EntryPointNotFound):
            return f"The archive {archive} has no VM file for {hypervisor}; pick an image built for it."
        return (
            f"Archive {archive} is downloaded and valid. "
            "Re-run to resume extraction, finished files are kept."
        )

    entry_point = result.extraction.entry_point_path if result.extraction else None
    if stage == Stage.CHECK:
        return (
            f"Install the {hypervisor} command line tools and re-run. "
            f"Extracted files in {entry_point.parent if entry_point else 'the download directory'} are reused."
        )
    if stage == Stage.PREPARE:
        return (
            f"Extraction is complete ({entry_point}). "
            "Fix the conversion error, remove any half-converted output and re-run."
        )
    return f"The VM files are ready at {entry_point}. Fix the {hypervisor} error and re-run, or import manually."


class Pipeline:
    """Runs acquisition, verification, extraction and installation for one image."""

    def __init__(
        self,
        config: Optional[GetIEConfig] = None,
        registry: Optional[BackendRegistry] = None,
        client: Optional[httpx.AsyncClient] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize pipeline."""
        self.config = config or GetIEConfig()
        self.registry = registry or BackendRegistry(self.config.tools)
        self.client = client
        self.progress_callback = progress_callback
        self.extractor = ArchiveExtractor(
            registry=self.registry,
            chunk_size=self.config.download.chunk_size,
        )

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self.client is not None:
            yield self.client
            return
        async with httpx.AsyncClient(
            timeout=self.config.http.timeout,
            follow_redirects=True,
            headers={"User-Agent": self.config.http.user_agent},
        ) as client:
            yield client

    async def run(
        self,
        spec: InstallSpec,
        descriptor: ImageDescriptor,
        download_dir: Optional[Path] = None,
    ) -> PipelineResult:
        """Run every stage, stopping at the first failure."""
        result = PipelineResult(spec=spec, descriptor=descriptor)
        download_dir = Path(download_dir or self.config.download.directory).expanduser()
        logger.info(
            f"Installing {spec.browser_os or descriptor.archive_name} "
            f"for {spec.hypervisor} on {spec.platform}"
        )

        stage = Stage.BACKEND
        try:
            backend = self.registry.create(spec.hypervisor)
            result.completed.append(stage)

            stage = Stage.FETCH
            result.archive = await self.fetch(descriptor, download_dir)
            result.completed.append(stage)

            stage = Stage.EXTRACT
            result.extraction = await self.extractor.extract(result.archive, spec.hypervisor)
            result.completed.append(stage)

            stage = Stage.CHECK
            await backend.check_installed()
            result.completed.append(stage)

            stage = Stage.PREPARE
            await backend.prepare(result.extraction.entry_point_path)
            result.completed.append(stage)

            stage = Stage.IMPORT
            result.outcome = await backend.import_vm()
            result.completed.append(stage)
        except GetIEError as e:
            result.failure = StageFailure(stage=stage, cause=e, hint=resume_hint(stage, e, result))
            logger.error(f"Pipeline stopped: {result.failure}")
        finally:
            result.finished_at = datetime.now()

        if result.ok:
            duration = (result.finished_at - result.started_at).total_seconds()
            logger.info(f"Pipeline completed in {duration:.2f}s")
        return result

    async def fetch(self, descriptor: ImageDescriptor, download_dir: Path) -> LocalArchive:
        """Download or re-verify the archive for ``descriptor``."""
        download_dir = Path(download_dir)
        try:
            download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create {download_dir}: {e}") from e

        destination = download_dir / descriptor.archive_name
        if destination.resolve().parent != download_dir.resolve():
            raise FilesystemError(
                f"Archive name {descriptor.archive_name!r} escapes download directory {download_dir}"
            )
        logger.info(f"Download: {descriptor.file_url}")
        logger.info(f"To: {destination}")

        async with self._http_client() as client:
            oracle = IntegrityOracle(client)
            expected = await oracle.fetch_expected_checksum(descriptor.checksum_url)

            fetcher = StreamingFetcher(
                client,
                chunk_size=self.config.download.chunk_size,
                progress_step=self.config.download.progress_step,
                algorithm=self.config.download.checksum_algorithm,
                progress_callback=self.progress_callback,
            )
            return await fetcher.fetch(descriptor.file_url, destination, expected)

    async def check(self, hypervisor: str) -> BaseBackend:
        """Create a backend and probe its tools."""
        backend = self.registry.create(hypervisor)
        await backend.check_installed()
        return backend
