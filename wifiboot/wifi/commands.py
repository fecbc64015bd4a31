"""
Platform shell command execution.

Every network primitive is a shell command. User-supplied values (network
names, passphrases) reach those commands only through environment
variables declared on the CommandSpec, never through the command text.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass
from typing import Mapping

from wifiboot.core.errors import CommandFailure

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class CommandSpec:
    """A shell command template and the environment parameters it reads."""

    script: str
    parameters: tuple[str, ...] = ()

    def bind(self, params: Mapping[str, str] | None) -> dict[str, str] | None:
        """Build the child environment for this command.

        Returns None when there is nothing to bind, so the child simply
        inherits our environment.
        """
        if not params:
            return None

        unknown = set(params) - set(self.parameters)
        if unknown:
            raise ValueError(f"Unexpected command parameters: {sorted(unknown)}")

        for name, value in params.items():
            if not isinstance(value, str):
                raise TypeError(f"Parameter {name} must be a string")

        env = dict(os.environ)
        env.update(params)
        return env


def split_lines(output: str) -> list[str]:
    """Split command output into lines, dropping blank ones."""
    return [line for line in output.split("\n") if line.strip()]


class CommandRunner:
    """
    Runs platform commands and normalizes their outcome.

    A run fails if the process exits non-zero, or if it writes anything
    at all to stderr. Several wireless tools print diagnostics on stderr
    when they have only partly worked.
    """

    def __init__(self, timeout: float | None = DEFAULT_TIMEOUT):
        self.timeout = timeout

    async def run(
        self,
        command: CommandSpec,
        params: Mapping[str, str] | None = None,
    ) -> str:
        """
        Run a command and return its trimmed stdout.

        Args:
            command: Command to run
            params: Values for the command's declared environment parameters

        Raises:
            CommandFailure: on non-zero exit, stderr output, spawn error or timeout
        """
        env = command.bind(params)
        logger.debug(f"Running command: {command.script}")

        try:
            process = await asyncio.create_subprocess_shell(
                command.script,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise CommandFailure(command.script, None, str(e)) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            await _kill(process)
            raise CommandFailure(
                command.script, None, f"timed out after {self.timeout}s"
            )
        except BaseException:
            # Cancelled mid-run
            await _kill(process)
            raise

        if process.returncode != 0:
            raise CommandFailure(
                command.script,
                process.returncode,
                stderr.decode("utf-8", errors="replace"),
            )

        if stderr:
            raise CommandFailure(
                command.script,
                process.returncode,
                f"output to stderr: {stderr.decode('utf-8', errors='replace')}",
            )

        return stdout.decode("utf-8", errors="replace").strip()


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the shell and everything it started, then reap it."""
    if process.returncode is None:
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    await process.wait()
