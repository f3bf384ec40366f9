"""VMware backend."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from getie.backends.base import BaseBackend, ImportOutcome
from getie.errors import ConversionFailed, FilesystemError, ToolMissing


logger = logging.getLogger(__name__)

VMRUN_VERSION_MARKER = "vmrun version"

# Images ship without a network adapter.
NETWORK_CONFIG_LINES = (
    'ethernet0.present = "TRUE"',
    'ethernet0.connectionType = "nat"',
    'ethernet0.wakeOnPcktRcv = "FALSE"',
    'ethernet0.addressType = "generated"',
)


def detect_vmrun_version(output: str) -> Optional[str]:
    """Find the version banner in vmrun's help text.

    vmrun has no --version flag. Run without arguments it prints usage and
    exits with status 255, so the banner line is the only sign of presence.
    """
    for line in output.splitlines():
        if VMRUN_VERSION_MARKER in line:
            return line.strip()
    return None


def append_network_config(vmx_path: Path) -> None:
    """Append the NAT adapter configuration to a .vmx file."""
    if not vmx_path.exists():
        raise ConversionFailed(f"Converted file {vmx_path} not found")
    try:
        with open(vmx_path, "a") as fh:
            for line in NETWORK_CONFIG_LINES:
                fh.write(f"{line}\n")
    except OSError as e:
        raise FilesystemError(f"Cannot update {vmx_path}: {e}") from e


class VMwareBackend(BaseBackend):
    """Converts .ovf to .vmx with ovftool and registers it through vmrun."""

    name = "VMware"
    entry_point_suffix = ".ovf"

    async def _check_installed(self) -> None:
        logger.info("Checking VMware installation")
        result = await self.probe([self.tools.ovftool, "--version"])
        logger.info(f"Detected {result.output.strip()}")

        result = await self.probe([self.tools.vmrun], expect_success=False)
        version = detect_vmrun_version(result.output)
        if version is None:
            raise ToolMissing(self.tools.vmrun, "unrecognised output")
        logger.info(f"Detected {version}")

    async def _prepare(self, entry_point: Path) -> Path:
        vmx_path = entry_point.with_suffix(".vmx")
        # ovftool refuses to overwrite
        if await asyncio.to_thread(vmx_path.exists):
            raise ConversionFailed(
                f"{vmx_path} already exists, remove it before converting again"
            )

        logger.info(f"Converting {entry_point} to {vmx_path}, please wait")
        result = await self.invoke(
            [self.tools.ovftool, str(entry_point), str(vmx_path)],
            error_cls=ConversionFailed,
        )
        logger.debug(result.output)

        await asyncio.to_thread(append_network_config, vmx_path)
        logger.info(f"Added network adapter configuration to {vmx_path}")
        return vmx_path

    async def _import(self, vm_path: Path) -> ImportOutcome:
        # vmrun has no import command; a start/stop cycle adds the VM to the library
        logger.info(f"Starting {vm_path}")
        start = await self.invoke([self.tools.vmrun, "start", str(vm_path)])
        logger.info(f"Stopping {vm_path}")
        stop = await self.invoke([self.tools.vmrun, "stop", str(vm_path)])
        return ImportOutcome(
            backend=self.name,
            vm_path=vm_path,
            output="\n".join(filter(None, [start.output, stop.output])),
        )
