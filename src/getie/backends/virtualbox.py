"""VirtualBox backend."""

import logging
from pathlib import Path

from getie.backends.base import BaseBackend, ImportOutcome


logger = logging.getLogger(__name__)


class VirtualBoxBackend(BaseBackend):
    """Imports .ova appliances with vboxmanage."""

    name = "VirtualBox"
    entry_point_suffix = ".ova"

    async def _check_installed(self) -> None:
        logger.info("Checking VirtualBox installation")
        result = await self.probe([self.tools.vboxmanage, "--version"])
        logger.info(f"Detected vboxmanage version {result.output.strip()}")

    async def _import(self, vm_path: Path) -> ImportOutcome:
        # NOTE: vboxmanage registers the same appliance again on every import
        logger.info(f"Importing {vm_path} into VirtualBox, please wait")
        result = await self.invoke([self.tools.vboxmanage, "import", str(vm_path)])
        logger.debug(result.output)
        return ImportOutcome(backend=self.name, vm_path=vm_path, output=result.output)
