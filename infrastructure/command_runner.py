# ============================================================================
# COMMAND RUNNER
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Infrastructure - External build tool execution
# PURPOSE: Run npm/docker and capture exit code and output
# CREATED: 08 OCT 2026
# ============================================================================
"""
Command Runner

The pipeline never shells out directly; it goes through a CommandRunner so
tests can substitute a mock and other build backends can be plugged in.

A non-zero exit is not an exception here. The caller inspects
CommandResult.exit_code and decides whether the step failed.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command invocation."""
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class CommandRunner(ABC):
    """Abstract base for command execution backends."""

    @abstractmethod
    async def run(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """
        Run a command to completion.

        Args:
            args: Program and arguments
            cwd: Working directory
            env: Full environment for the child (inherits ours if None)

        Returns:
            CommandResult with exit code and decoded output
        """
        pass


class SubprocessCommandRunner(CommandRunner):
    """Runs commands as local subprocesses without a shell."""

    async def run(
        self,
        args: Sequence[str],
        cwd: Optional[Union[str, Path]] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        logger.debug(f"Invoking command: {' '.join(args)} (cwd={cwd})")

        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()

        return CommandResult(
            exit_code=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )


__all__ = [
    "CommandResult",
    "CommandRunner",
    "SubprocessCommandRunner",
]
