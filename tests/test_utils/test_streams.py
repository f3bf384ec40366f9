"""Tests for composable stream writers."""

import hashlib
import io

from getie.utils.streams import (
    HashingWriter,
    NullWriter,
    ProgressEvent,
    ProgressWriter,
    compute_checksum,
    format_digest,
)


class TestHashingWriter:
    """Test HashingWriter."""

    def test_forwards_and_hashes(self):
        """Test bytes reach the wrapped writer and the hash."""
        buffer = io.BytesIO()
        writer = HashingWriter(buffer)

        writer.write(b"hello ")
        writer.write(b"world")

        assert buffer.getvalue() == b"hello world"
        assert writer.bytes_hashed == 11
        assert writer.hexdigest() == hashlib.md5(b"hello world").hexdigest().upper()

    def test_other_algorithm(self):
        """Test a non-default algorithm."""
        writer = HashingWriter(NullWriter(), "sha256")
        writer.write(b"data")

        assert writer.hexdigest() == hashlib.sha256(b"data").hexdigest().upper()

    def test_format_digest_is_uppercase(self):
        """Test digests are rendered as uppercase hex."""
        assert format_digest(hashlib.md5(b"")) == "D41D8CD98F00B204E9800998ECF8427E"


class TestProgressWriter:
    """Test ProgressWriter."""

    def test_emits_per_step_and_once_on_finish(self):
        """Test progress is reported per step and exactly once on completion."""
        events = []
        buffer = io.BytesIO()
        writer = ProgressWriter(buffer, total=12, step=4, callback=events.append)

        for _ in range(4):
            writer.write(b"abc")
        writer.finish()
        writer.finish()

        assert buffer.getvalue() == b"abc" * 4
        assert [e.written for e in events] == [6, 12, 12]
        assert [e.done for e in events] == [False, False, True]
        assert events[-1].percent == 100.0

    def test_without_callback(self):
        """Test writer works without a callback."""
        buffer = io.BytesIO()
        writer = ProgressWriter(buffer, total=None, step=1)
        writer.write(b"abc")
        writer.finish()

        assert writer.written == 3

    def test_chained_with_hashing(self):
        """Test hashing and progress compose over one pass."""
        events = []
        buffer = io.BytesIO()
        progress = ProgressWriter(buffer, total=None, step=1024, callback=events.append)
        sink = HashingWriter(progress)

        payload = b"x" * 4096
        for i in range(0, len(payload), 512):
            sink.write(payload[i:i + 512])
        progress.finish()

        assert buffer.getvalue() == payload
        assert sink.bytes_hashed == progress.written == len(payload)
        assert sink.hexdigest() == hashlib.md5(payload).hexdigest().upper()
        assert len([e for e in events if not e.done]) == 4
        assert events[-1].done


class TestProgressEvent:
    """Test ProgressEvent."""

    def test_percent(self):
        assert ProgressEvent(written=50, total=200).percent == 25.0

    def test_percent_unknown_total(self):
        assert ProgressEvent(written=50).percent is None


def test_compute_checksum(tmp_path):
    """Test file checksum is streamed in chunks."""
    payload = bytes(range(256)) * 100
    path = tmp_path / "archive.zip"
    path.write_bytes(payload)

    assert compute_checksum(path, chunk_size=1000) == hashlib.md5(payload).hexdigest().upper()
