"""
Command execution for pipeline steps.
"""

import logging
import os
import signal
import subprocess
from typing import Dict, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

class LaunchError(Exception):
    """Raised when a command could not be started at all."""
    pass

class CommandTimeout(Exception):
    """Raised when a command exceeds its timeout."""

    def __init__(self, command: str, timeout: float, output: str = ""):
        super().__init__(f"'{command}' timed out after {timeout}s")
        self.command = command
        self.timeout = timeout
        self.output = output

class CommandResult(BaseModel):
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

def shell_command(shell: str, commands: List[str]) -> List[str]:
    """
    Build a shell invocation for one or more commands.
    Commands are joined with && so the first failure stops the rest.
    """
    return [shell, "-c", " && ".join(commands)]

def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data

class SubprocessExecutor:
    """Runs step commands as local processes and waits for them."""

    def run(
        self,
        command: str,
        args: List[str],
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        full_env = dict(os.environ)
        if env:
            full_env.update(env)

        logger.debug(f"Running {command} {args} in {cwd or os.getcwd()}")

        try:
            process = subprocess.Popen(
                [command, *args],
                env=full_env,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
                # Own process group so a timeout can kill everything the step started
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchError(f"Failed to start '{command}': {e}") from e

        try:
            stdout, stderr = process.communicate(timeout=timeout or None)
        except subprocess.TimeoutExpired:
            self._kill_group(process)
            stdout, stderr = process.communicate()
            raise CommandTimeout(command, timeout, _decode(stdout) + _decode(stderr))

        return CommandResult(
            exit_code=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )

    @staticmethod
    def _kill_group(process: subprocess.Popen):
        """Kill the step's whole process group, not just the direct child."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass  # Group already gone
        process.wait()
