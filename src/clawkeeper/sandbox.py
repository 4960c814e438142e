"""Process layer for external commands run inside the sandbox.

Everything the engine does through an external tool (mount table
lookups, s3fs, rsync) goes through a ``ProcessRunner``. Tests inject a
fake runner; production uses ``LocalProcessRunner``.

Usage:
    from clawkeeper.sandbox import LocalProcessRunner, run_command
    result = run_command(LocalProcessRunner(), "mount", timeout=5)
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Optional

logger = logging.getLogger("clawkeeper.sandbox")

STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class ProcessHandle(ABC):
    """A started external process."""

    @property
    @abstractmethod
    def status(self) -> str:
        """One of ``running``, ``completed`` or ``failed``."""

    @property
    @abstractmethod
    def exit_code(self) -> Optional[int]:
        """Exit code, or None while the process is still running."""

    @abstractmethod
    def logs(self) -> tuple[str, str]:
        """Captured (stdout, stderr) so far."""


class ProcessRunner(ABC):
    """Starts shell commands."""

    @abstractmethod
    def start(
        self, command: str, env: Optional[dict[str, str]] = None
    ) -> ProcessHandle:
        """Start ``command`` in a shell.

        Args:
            command: Shell command string.
            env: Extra environment variables for this process only.

        Returns:
            ProcessHandle for the started process.
        """


class LocalProcessHandle(ProcessHandle):
    """Handle over a ``subprocess.Popen`` spooling output to temp files."""

    def __init__(self, proc: subprocess.Popen, stdout: IO[bytes], stderr: IO[bytes]):
        self._proc = proc
        self._stdout = stdout
        self._stderr = stderr

    @property
    def status(self) -> str:
        code = self._proc.poll()
        if code is None:
            return STATUS_RUNNING
        return STATUS_COMPLETED if code == 0 else STATUS_FAILED

    @property
    def exit_code(self) -> Optional[int]:
        return self._proc.poll()

    def logs(self) -> tuple[str, str]:
        return _read_spool(self._stdout), _read_spool(self._stderr)


def _read_spool(spool: IO[bytes]) -> str:
    spool.flush()
    spool.seek(0)
    return spool.read().decode("utf-8", errors="replace")


class LocalProcessRunner(ProcessRunner):
    """Runs commands with ``/bin/sh`` on this machine."""

    def start(
        self, command: str, env: Optional[dict[str, str]] = None
    ) -> ProcessHandle:
        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        stdout = tempfile.TemporaryFile()
        stderr = tempfile.TemporaryFile()
        proc = subprocess.Popen(
            command,
            shell=True,
            stdout=stdout,
            stderr=stderr,
            env=full_env,
        )
        return LocalProcessHandle(proc, stdout, stderr)


@dataclass
class CommandResult:
    """Outcome of a command that was waited on.

    Attributes:
        exit_code: Exit code, or None if the process never finished.
        stdout: Captured standard output.
        stderr: Captured standard error.
        timed_out: True when the wait gave up before the process ended.
    """

    exit_code: Optional[int] = None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0

    @property
    def diagnostics(self) -> str:
        """Best available description of what the tool reported."""
        return self.stderr.strip() or self.stdout.strip()


def wait_for_process(
    handle: ProcessHandle, timeout: float, poll_interval: float = 0.5
) -> bool:
    """Block until the process leaves the running state.

    The process is not killed when the timeout expires.

    Args:
        handle: Process to wait on.
        timeout: Maximum seconds to wait.
        poll_interval: Seconds between status checks.

    Returns:
        bool: True if the process finished within the timeout.
    """
    deadline = time.monotonic() + timeout
    while handle.status == STATUS_RUNNING:
        if time.monotonic() >= deadline:
            return False
        time.sleep(poll_interval)
    return True


def run_command(
    runner: ProcessRunner,
    command: str,
    timeout: float,
    env: Optional[dict[str, str]] = None,
    poll_interval: float = 0.5,
) -> CommandResult:
    """Start a command, wait for it, and collect its output.

    Args:
        runner: Process runner to use.
        command: Shell command string.
        timeout: Maximum seconds to wait.
        env: Extra environment for the process.
        poll_interval: Seconds between status checks.

    Returns:
        CommandResult: ``timed_out`` is set if the wait expired.
    """
    handle = runner.start(command, env=env)
    finished = wait_for_process(handle, timeout, poll_interval)
    stdout, stderr = handle.logs()
    if not finished:
        logger.warning("Command still running after %.0fs: %s", timeout, command)
        return CommandResult(stdout=stdout, stderr=stderr, timed_out=True)
    return CommandResult(exit_code=handle.exit_code, stdout=stdout, stderr=stderr)
