"""Tests for archive extraction."""

import os
import stat
import zipfile
from pathlib import Path

import pytest

from getie.errors import (
    AmbiguousEntryPoint,
    ArchiveFormatError,
    EntryPointNotFound,
    UnsupportedBackend,
)
from getie.models.image import LocalArchive
from getie.pipeline.extractor import ArchiveExtractor, destination_for, select_entry_point


def build_zip(path: Path, entries) -> Path:
    """Write a zip holding ``entries`` as (name, bytes) pairs."""
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return path


@pytest.fixture
def win10_zip(tmp_path):
    return build_zip(tmp_path / "win10.zip", [
        ("win10.ovf", b"<Envelope/>"),
        ("win10-disk1.vmdk", b"\x00" * 4096),
        ("win10.mf", b"SHA1(win10.ovf)= 00"),
    ])


class TestDestinationFor:
    """Test extraction directory derivation."""

    def test_strips_final_extension(self):
        assert destination_for(Path("/d/win10.zip")) == Path("/d/win10")

    def test_only_last_extension(self):
        assert destination_for(Path("/d/MSEdge.Win10.VMware.zip")) == Path("/d/MSEdge.Win10.VMware")

    def test_no_extension(self):
        with pytest.raises(ArchiveFormatError):
            destination_for(Path("/d/win10"))


class TestSelectEntryPoint:
    """Test entry point selection."""

    def test_single_match(self):
        candidates = [Path("a/win10.ovf"), Path("a/win10.vmdk")]

        assert select_entry_point(candidates, ".ovf", "VMware") == Path("a/win10.ovf")

    def test_no_match(self):
        with pytest.raises(EntryPointNotFound) as exc_info:
            select_entry_point([Path("a/win10.vmdk")], ".ovf", "VMware")

        assert "VMware" in str(exc_info.value)

    def test_several_matches(self):
        with pytest.raises(AmbiguousEntryPoint):
            select_entry_point([Path("a/one.ovf"), Path("a/two.ovf")], ".ovf", "VMware")

    def test_suffix_is_case_sensitive(self):
        with pytest.raises(EntryPointNotFound):
            select_entry_point([Path("a/WIN10.OVF")], ".ovf", "VMware")

    def test_matches_in_subdirectories(self):
        candidates = [Path("a/Virtual Machines/vm.xml"), Path("a/Virtual Hard Disks/disk.vhd")]

        assert select_entry_point(candidates, ".xml", "HyperV").name == "vm.xml"


@pytest.mark.asyncio
class TestArchiveExtractor:
    """Test ArchiveExtractor."""

    async def test_extracts_and_finds_entry_point(self, win10_zip, tmp_path):
        result = await ArchiveExtractor().extract(win10_zip, "VMware")

        destination = tmp_path / "win10"
        assert result.destination_dir == destination
        assert result.entry_point_path == destination / "win10.ovf"
        assert (destination / "win10-disk1.vmdk").read_bytes() == b"\x00" * 4096
        assert len(result.extracted) == 3
        assert result.skipped == []
        assert not list(destination.glob("*.part"))

    @pytest.mark.parametrize("hypervisor,entry_point", [
        ("VirtualBox", "IE11 - Win7.ova"),
        ("VMware", "IE11 - Win7/IE11 - Win7.ovf"),
        ("HyperV", "IE11 - Win7/Virtual Machines/vm.xml"),
        ("Parallels", "IE11 - Win7.pvm/config.pvs"),
    ])
    async def test_entry_point_per_backend(self, tmp_path, hypervisor, entry_point):
        """Test each backend finds its own file in an archive holding all four."""
        archive = build_zip(tmp_path / "all.zip", [
            ("IE11 - Win7.ova", b"ova"),
            ("IE11 - Win7/IE11 - Win7.ovf", b"<Envelope/>"),
            ("IE11 - Win7/Virtual Machines/vm.xml", b"<vm/>"),
            ("IE11 - Win7.pvm/config.pvs", b"<ParallelsVirtualMachine/>"),
        ])

        result = await ArchiveExtractor().extract(archive, hypervisor)

        assert result.entry_point_path == tmp_path / "all" / entry_point

    async def test_accepts_local_archive(self, win10_zip):
        archive = LocalArchive(path=win10_zip, expected_checksum="X")

        result = await ArchiveExtractor().extract(archive, "VMware")

        assert result.entry_point_path.name == "win10.ovf"

    async def test_resume_skips_existing_files(self, win10_zip, tmp_path):
        """Test a second run does not rewrite files already on disk."""
        destination = tmp_path / "win10"
        destination.mkdir()
        (destination / "win10-disk1.vmdk").write_bytes(b"already here")

        result = await ArchiveExtractor().extract(win10_zip, "VMware")

        assert (destination / "win10-disk1.vmdk").read_bytes() == b"already here"
        assert result.skipped == [destination / "win10-disk1.vmdk"]
        assert len(result.extracted) == 2

    async def test_existing_entry_point_still_selected(self, win10_zip, tmp_path):
        destination = tmp_path / "win10"
        destination.mkdir()
        (destination / "win10.ovf").write_bytes(b"<Envelope/>")

        result = await ArchiveExtractor().extract(win10_zip, "VMware")

        assert result.entry_point_path == destination / "win10.ovf"
        assert destination / "win10.ovf" in result.skipped

    async def test_second_run_skips_everything(self, win10_zip):
        extractor = ArchiveExtractor()
        await extractor.extract(win10_zip, "VMware")

        result = await extractor.extract(win10_zip, "VMware")

        assert result.extracted == []
        assert len(result.skipped) == 3

    async def test_nested_directories(self, tmp_path):
        archive = build_zip(tmp_path / "hyperv.zip", [
            ("MSEdge - Win10/Virtual Machines/vm.xml", b"<vm/>"),
            ("MSEdge - Win10/Virtual Hard Disks/disk.vhdx", b"disk"),
        ])

        result = await ArchiveExtractor().extract(archive, "HyperV")

        assert result.entry_point_path == (
            tmp_path / "hyperv" / "MSEdge - Win10" / "Virtual Machines" / "vm.xml"
        )

    async def test_directory_entries(self, tmp_path):
        archive = tmp_path / "dirs.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(zipfile.ZipInfo("empty/"), b"")
            zf.writestr("vm.ova", b"ova")

        result = await ArchiveExtractor().extract(archive, "VirtualBox")

        assert (tmp_path / "dirs" / "empty").is_dir()
        assert result.entry_point_path.name == "vm.ova"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
    async def test_permission_bits_preserved(self, tmp_path):
        archive = tmp_path / "perm.zip"
        info = zipfile.ZipInfo("run.sh")
        info.external_attr = 0o750 << 16
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr(info, b"#!/bin/sh\n")
            zf.writestr("vm.ova", b"ova")

        await ArchiveExtractor().extract(archive, "VirtualBox")

        assert stat.S_IMODE((tmp_path / "perm" / "run.sh").stat().st_mode) == 0o750

    async def test_explicit_destination(self, win10_zip, tmp_path):
        target = tmp_path / "elsewhere"

        result = await ArchiveExtractor().extract(win10_zip, "VMware", destination_dir=target)

        assert result.entry_point_path == target / "win10.ovf"

    async def test_unsupported_backend_before_io(self, win10_zip, tmp_path):
        with pytest.raises(UnsupportedBackend):
            await ArchiveExtractor().extract(win10_zip, "Bochs")

        assert not (tmp_path / "win10").exists()

    async def test_missing_entry_point(self, win10_zip):
        with pytest.raises(EntryPointNotFound):
            await ArchiveExtractor().extract(win10_zip, "VirtualBox")

    async def test_ambiguous_entry_point(self, tmp_path):
        archive = build_zip(tmp_path / "two.zip", [("a.ova", b"a"), ("b.ova", b"b")])

        with pytest.raises(AmbiguousEntryPoint):
            await ArchiveExtractor().extract(archive, "VirtualBox")

    async def test_not_a_zip(self, tmp_path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"this is not a zip file")

        with pytest.raises(ArchiveFormatError):
            await ArchiveExtractor().extract(archive, "VMware")

    async def test_path_traversal_rejected(self, tmp_path):
        archive = build_zip(tmp_path / "evil.zip", [("../escape.ova", b"x")])

        with pytest.raises(ArchiveFormatError):
            await ArchiveExtractor().extract(archive, "VirtualBox")

        assert not (tmp_path / "escape.ova").exists()
