"""Composable byte-stream writers.

Writers here wrap another object with a ``write(bytes)`` method, perform a
side effect and forward the chunk. Chaining them lets a download be hashed,
tracked and written to disk in a single pass::

    sink = HashingWriter(ProgressWriter(fh, total, step, callback))
    for chunk in chunks:
        sink.write(chunk)
"""

import hashlib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, Optional


DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_ALGORITHM = "md5"


def format_digest(digest) -> str:
    """Render a hash object the way publishers print checksums."""
    return digest.hexdigest().upper()


@dataclass
class ProgressEvent:
    """Snapshot of a transfer."""
    written: int
    total: Optional[int] = None
    done: bool = False

    @property
    def percent(self) -> Optional[float]:
        if not self.total:
            return None
        return min(self.written / self.total * 100, 100.0)


ProgressCallback = Callable[[ProgressEvent], None]


class NullWriter:
    """Writer that discards everything."""

    def write(self, data: bytes) -> int:
        return len(data)


class HashingWriter:
    """Feeds every chunk into a running hash before forwarding it."""

    def __init__(self, writer, algorithm: str = DEFAULT_ALGORITHM):
        self.writer = writer
        self.algorithm = algorithm
        self.bytes_hashed = 0
        self._digest = hashlib.new(algorithm)

    def write(self, data: bytes) -> int:
        self._digest.update(data)
        self.bytes_hashed += len(data)
        return self.writer.write(data)

    def hexdigest(self) -> str:
        return format_digest(self._digest)


class ProgressWriter:
    """Reports progress at most once per ``step`` bytes and once on finish."""

    def __init__(
        self,
        writer,
        total: Optional[int],
        step: int,
        callback: Optional[ProgressCallback] = None,
    ):
        self.writer = writer
        self.total = total
        self.step = step
        self.callback = callback
        self.written = 0
        self._last_reported = 0
        self._finished = False

    def write(self, data: bytes) -> int:
        n = self.writer.write(data)
        self.written += len(data)
        if self.written - self._last_reported >= self.step:
            self._last_reported = self.written
            self._emit(done=False)
        return n

    def finish(self):
        """Emit the completion event. Further calls are ignored."""
        if self._finished:
            return
        self._finished = True
        self._emit(done=True)

    def _emit(self, done: bool):
        if self.callback:
            self.callback(ProgressEvent(written=self.written, total=self.total, done=done))


def copy_stream(
    source: BinaryIO,
    writer,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> None:
    """Copy a readable stream into a writer chain."""
    shutil.copyfileobj(source, writer, chunk_size)


def compute_checksum(
    path: Path,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> str:
    """Stream a file through a hash without loading it into memory."""
    sink = HashingWriter(NullWriter(), algorithm)
    with open(path, "rb") as fh:
        copy_stream(fh, sink, chunk_size)
    return sink.hexdigest()
