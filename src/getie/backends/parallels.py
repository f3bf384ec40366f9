"""Parallels backend."""

import logging
from pathlib import Path

from getie.backends.base import BaseBackend, ImportOutcome


logger = logging.getLogger(__name__)


class ParallelsBackend(BaseBackend):
    """Registers .pvs machines with prlctl.

    The server version is queried with prlsrvctl, VMs are managed by prlctl.
    """

    name = "Parallels"
    entry_point_suffix = ".pvs"

    async def _check_installed(self) -> None:
        logger.info("Checking Parallels installation")
        result = await self.probe([self.tools.prlsrvctl, "info"])
        logger.debug(result.output)
        logger.info("Parallels server is present")

    async def _import(self, vm_path: Path) -> ImportOutcome:
        logger.info(f"Registering {vm_path} with Parallels, please wait")
        result = await self.invoke([self.tools.prlctl, "register", str(vm_path)])
        logger.debug(result.output)
        return ImportOutcome(backend=self.name, vm_path=vm_path, output=result.output)
