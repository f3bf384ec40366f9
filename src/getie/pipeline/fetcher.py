"""Streaming archive download with single-pass verification."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import httpx

from getie.errors import FilesystemError, IntegrityMismatch, NetworkError
from getie.models.image import LocalArchive
from getie.utils.streams import (
    DEFAULT_ALGORITHM,
    DEFAULT_CHUNK_SIZE,
    HashingWriter,
    ProgressCallback,
    ProgressWriter,
    compute_checksum,
)


logger = logging.getLogger(__name__)

DEFAULT_PROGRESS_STEP = 1024 * 1024


def _content_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("Content-Length")
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length > 0 else None


def _discard_placeholder(path: Path):
    """Remove a file this run created but never wrote to."""
    try:
        if path.exists() and path.stat().st_size == 0:
            path.unlink()
    except OSError as e:
        logger.warning(f"Cannot remove empty file {path}: {e}")


class StreamingFetcher:
    """Downloads an archive while hashing it and reporting progress.

    An existing destination file is never re-downloaded: it is hashed and
    compared, and a mismatch fails the run without touching the file. A
    fresh download that does not match is also kept on disk for inspection.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress_step: int = DEFAULT_PROGRESS_STEP,
        algorithm: str = DEFAULT_ALGORITHM,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize fetcher."""
        self.client = client
        self.chunk_size = chunk_size
        self.progress_step = progress_step
        self.algorithm = algorithm
        self.progress_callback = progress_callback

    async def fetch(self, file_url: str, destination: Path, expected_checksum: str) -> LocalArchive:
        """Ensure ``destination`` holds the archive published at ``file_url``."""
        destination = Path(destination)

        if await asyncio.to_thread(destination.exists):
            return await self._verify_existing(destination, expected_checksum)

        return await self._download(file_url, destination, expected_checksum)

    async def _verify_existing(self, destination: Path, expected_checksum: str) -> LocalArchive:
        logger.info(f"File {destination} already exists, checking checksum")
        try:
            actual = await asyncio.to_thread(
                compute_checksum, destination, self.algorithm, self.chunk_size
            )
        except OSError as e:
            raise FilesystemError(f"Cannot read {destination}: {e}") from e

        logger.info(f"Local file checksum {actual}")
        self._compare(destination, expected_checksum, actual)
        return LocalArchive(path=destination, expected_checksum=expected_checksum)

    async def _download(self, file_url: str, destination: Path, expected_checksum: str) -> LocalArchive:
        logger.info(f"Downloading {file_url} to {destination}")
        try:
            fh = await asyncio.to_thread(open, destination, "xb")
        except OSError as e:
            raise FilesystemError(f"Cannot create {destination}: {e}") from e

        progress = ProgressWriter(fh, None, self.progress_step, self.progress_callback)
        sink = HashingWriter(progress, self.algorithm)
        try:
            with fh:
                await self._stream(file_url, sink, progress)
        except NetworkError:
            if sink.bytes_hashed == 0:
                await asyncio.to_thread(_discard_placeholder, destination)
            raise

        actual = sink.hexdigest()
        logger.info(f"Downloaded {sink.bytes_hashed} bytes, checksum {actual}")
        self._compare(destination, expected_checksum, actual)
        return LocalArchive(path=destination, expected_checksum=expected_checksum, downloaded=True)

    async def _stream(self, file_url: str, sink: HashingWriter, progress: ProgressWriter):
        try:
            async with self.client.stream("GET", file_url) as response:
                response.raise_for_status()
                progress.total = _content_length(response)
                logger.info(f"File size {progress.total if progress.total else 'unknown'} bytes")

                # Each write completes before the next chunk is pulled.
                async for chunk in response.aiter_bytes(self.chunk_size):
                    await asyncio.to_thread(sink.write, chunk)
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP error {e.response.status_code} downloading {file_url}"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Connection error downloading {file_url}: {e}") from e
        except OSError as e:
            raise FilesystemError(f"Write failed: {e}") from e

        progress.finish()

    @staticmethod
    def _compare(path: Path, expected: str, actual: str):
        # Exact comparison, the publisher's format is not normalized
        if expected != actual:
            logger.error(f"Checksum mismatch for {path}: expected {expected}, got {actual}")
            raise IntegrityMismatch(path, expected, actual)
        logger.info("Checksum matches")
