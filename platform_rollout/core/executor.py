"""
Command execution utility for the platform rollout orchestrator.
Runs external tools (container CLI, IaC CLI) with output capture and timeouts.
Commands are split with shlex and executed without a shell.
"""

import asyncio
import os
import shlex
import subprocess
import time
from pathlib import Path
from dataclasses import dataclass
from typing import List, Sequence, Union

from .logger import AgentLogger


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: str
    return_code: int
    stdout: str
    stderr: str
    success: bool
    duration_seconds: float

    @property
    def output(self) -> str:
        """Combined stdout and stderr."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def to_dict(self) -> dict:
        return {
            "command": self.command,
            "return_code": self.return_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "success": self.success,
            "duration_seconds": self.duration_seconds,
        }


class CommandExecutor:
    """Executes external commands with proper error handling and logging."""

    def __init__(
        self,
        working_dir: Path = None,
        logger: AgentLogger = None,
    ):
        self.working_dir = working_dir or Path.cwd()
        self.logger = logger or AgentLogger("CommandExecutor")

    async def run(
        self,
        command: Union[str, Sequence[str]],
        timeout: float = 300,
        env: dict = None,
    ) -> CommandResult:
        """
        Execute a command asynchronously.

        Args:
            command: The command line, or an argv sequence
            timeout: Maximum execution time in seconds
            env: Additional environment variables

        Returns:
            CommandResult with execution details. Timeouts and spawn errors
            produce a failed result rather than an exception.
        """
        argv = self._split(command)
        display = shlex.join(argv)
        self.logger.debug(f"Executing: {display}")
        start_time = time.time()

        full_env = os.environ.copy()
        if env:
            full_env.update(env)

        try:
            result = await self._run_simple(argv, timeout, full_env)
            duration = time.time() - start_time

            cmd_result = CommandResult(
                command=display,
                return_code=result.returncode,
                stdout=result.stdout.decode(errors="replace") if result.stdout else "",
                stderr=result.stderr.decode(errors="replace") if result.stderr else "",
                success=result.returncode == 0,
                duration_seconds=duration,
            )

            if cmd_result.success:
                self.logger.debug(f"Command succeeded in {duration:.2f}s")
            else:
                self.logger.warning(f"Command failed with code {result.returncode}", command=display)

            return cmd_result

        except asyncio.TimeoutError:
            duration = time.time() - start_time
            self.logger.error(f"Command timed out after {timeout}s", command=display)
            return CommandResult(
                command=display,
                return_code=-1,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                success=False,
                duration_seconds=duration,
            )
        except OSError as e:
            duration = time.time() - start_time
            self.logger.error(f"Command execution failed: {e}", exc=e)
            return CommandResult(
                command=display,
                return_code=-1,
                stdout="",
                stderr=str(e),
                success=False,
                duration_seconds=duration,
            )

    @staticmethod
    def _split(command: Union[str, Sequence[str]]) -> List[str]:
        if isinstance(command, str):
            return shlex.split(command)
        return [str(part) for part in command]

    async def _run_simple(self, argv: List[str], timeout: float, env: dict) -> subprocess.CompletedProcess:
        """Run command and collect its output."""
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.working_dir,
            env=env,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        return subprocess.CompletedProcess(
            args=argv,
            returncode=process.returncode,
            stdout=stdout,
            stderr=stderr,
        )
