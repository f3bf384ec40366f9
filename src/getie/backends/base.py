"""Base hypervisor backend interface."""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Type

from getie.errors import BackendStateError, GetIEError, ImportFailed, ToolMissing
from getie.models.config import ToolsConfig
from getie.utils.process import CommandResult, run_command


logger = logging.getLogger(__name__)


class BackendState(Enum):
    """Backend lifecycle state."""
    NOT_CHECKED = "not_checked"
    CHECKED = "checked"
    PREPARED = "prepared"
    IMPORTED = "imported"
    FAILED = "failed"


@dataclass
class ImportOutcome:
    """Result of importing a VM into a hypervisor."""
    backend: str
    vm_path: Path
    output: str = ""
    warnings: List[str] = field(default_factory=list)


class BaseBackend(ABC):
    """Hypervisor adapter: check tooling, prepare the entry point, import it.

    Calls must follow NOT_CHECKED -> CHECKED -> PREPARED -> IMPORTED. The
    first failure moves the backend to FAILED and every later call raises
    BackendStateError.
    """

    name: str = ""
    entry_point_suffix: str = ""

    def __init__(self, tools: Optional[ToolsConfig] = None):
        """Initialize backend."""
        self.tools = tools or ToolsConfig()
        self.state = BackendState.NOT_CHECKED
        self.final_path: Optional[Path] = None

    async def check_installed(self) -> None:
        """Verify the host tooling is present."""
        self._expect(BackendState.NOT_CHECKED, "check")
        try:
            await self._check_installed()
        except GetIEError:
            self.state = BackendState.FAILED
            raise
        self.state = BackendState.CHECKED

    async def prepare(self, entry_point: Path) -> Path:
        """Turn the extracted entry point into the file to import."""
        self._expect(BackendState.CHECKED, "prepare")
        try:
            final_path = await self._prepare(Path(entry_point))
        except GetIEError:
            self.state = BackendState.FAILED
            raise
        self.final_path = final_path
        self.state = BackendState.PREPARED
        return final_path

    async def import_vm(self) -> ImportOutcome:
        """Register the prepared VM with the hypervisor."""
        self._expect(BackendState.PREPARED, "import")
        try:
            outcome = await self._import(self.final_path)
        except GetIEError:
            self.state = BackendState.FAILED
            raise
        self.state = BackendState.IMPORTED
        return outcome

    @abstractmethod
    async def _check_installed(self) -> None:
        """Probe the backend's tools, raising ToolMissing."""
        pass

    async def _prepare(self, entry_point: Path) -> Path:
        """Identity by default."""
        return entry_point

    @abstractmethod
    async def _import(self, vm_path: Path) -> ImportOutcome:
        """Import the VM, raising ImportFailed."""
        pass

    def _expect(self, state: BackendState, action: str):
        if self.state != state:
            raise BackendStateError(
                f"Cannot {action} {self.name} backend in state {self.state.value}"
            )

    async def probe(self, cmd: List[str], expect_success: bool = True) -> CommandResult:
        """Run a tool to detect it. Absence or a bad exit raises ToolMissing."""
        tool = cmd[0]
        try:
            result = await run_command(
                cmd, check=False, merge_stderr=True, timeout=self.tools.timeout
            )
        except OSError as e:
            logger.debug(f"Probe of {tool} failed: {e}")
            raise ToolMissing(tool, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise ToolMissing(tool, "timed out") from e

        if expect_success and result.returncode != 0:
            raise ToolMissing(
                tool, f"exit status {result.returncode}: {result.output.strip()}"
            )
        return result

    async def invoke(
        self,
        cmd: List[str],
        error_cls: Type[GetIEError] = ImportFailed,
    ) -> CommandResult:
        """Run a tool that must succeed."""
        try:
            result = await run_command(
                cmd, check=False, merge_stderr=True, timeout=self.tools.timeout
            )
        except OSError as e:
            raise ToolMissing(cmd[0], str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise error_cls(f"{cmd[0]} timed out after {e.timeout}s") from e

        if result.returncode != 0:
            raise error_cls(
                f"{' '.join(cmd)} failed with exit status {result.returncode}: "
                f"{result.output.strip()}"
            )
        return result
