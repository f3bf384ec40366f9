"""Hyper-V backend."""

import logging
from pathlib import Path

from getie.backends.base import BaseBackend, ImportOutcome
from getie.errors import ToolMissing


logger = logging.getLogger(__name__)

NETWORK_WARNING = (
    "Please check Network adapter settings of the imported VM. "
    "By default it isn't connected to a virtual switch."
)


def quote_powershell(value: str) -> str:
    """Single-quote a value for a PowerShell command line."""
    return "'" + value.replace("'", "''") + "'"


class HyperVBackend(BaseBackend):
    """Imports exported VM definitions (.xml) through PowerShell."""

    name = "HyperV"
    entry_point_suffix = ".xml"

    async def _check_installed(self) -> None:
        logger.info("Checking Hyper-V installation")
        await self.probe([self.tools.powershell, "-Command", "Get-Host"])
        logger.info("PowerShell is present")

        result = await self.probe(
            [self.tools.powershell, "-Command", "Get-Command", "-Module", "Hyper-V"]
        )
        if not result.output.strip():
            raise ToolMissing("Hyper-V", "no cmdlets found in the Hyper-V module")
        logger.info("Hyper-V cmdlets are present")

    async def _import(self, vm_path: Path) -> ImportOutcome:
        logger.info(f"Importing {vm_path} into Hyper-V, please wait")
        result = await self.invoke([
            self.tools.powershell,
            "-Command",
            "Import-VM",
            "-Path",
            quote_powershell(str(vm_path)),
        ])
        logger.debug(result.output)

        # Hosts may have zero or several virtual switches, so the adapter is
        # left unconnected for the user to choose.
        logger.warning(NETWORK_WARNING)
        return ImportOutcome(
            backend=self.name,
            vm_path=vm_path,
            output=result.output,
            warnings=[NETWORK_WARNING],
        )
