"""External command execution."""

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def output(self) -> str:
        """Combined stdout and stderr text."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    merge_stderr: bool = False,
    timeout: Optional[int] = None,
    **kwargs
) -> CommandResult:
    """Run a command asynchronously.

    Raises FileNotFoundError when the executable does not exist and
    subprocess.CalledProcessError on a non-zero exit when ``check`` is set.
    With ``merge_stderr`` both streams are captured into ``stdout``.
    """
    logger.debug(f"Running command: {' '.join(cmd)}")

    if capture_output:
        stdout_target = asyncio.subprocess.PIPE
        stderr_target = asyncio.subprocess.STDOUT if merge_stderr else asyncio.subprocess.PIPE
    else:
        stdout_target = stderr_target = None

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=stdout_target,
        stderr=stderr_target,
        **kwargs
    )

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode(errors="replace") if stdout else "",
        stderr=stderr.decode(errors="replace") if stderr else "",
    )

    if check and process.returncode != 0:
        error = subprocess.CalledProcessError(
            process.returncode, cmd
        )
        error.stdout = result.stdout
        error.stderr = result.stderr
        raise error

    return result
