"""
Mirror copies -- rsync invocations shared by restore and backup.

Both directions use the same filters, so a file restore brings back is
exactly a file backup sends, and nothing outside the whitelist is ever
deleted on either side.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Optional

from ..manifest import (
    BOOKKEEPING_FILES,
    CONFIG_EXCLUDE_SUFFIXES,
    WORKSPACE_ROOT_FILES,
    WORKSPACE_SUBTREES,
)
from ..sandbox import ProcessRunner, run_command

logger = logging.getLogger("clawkeeper.sync.mirror")

# s3fs does not keep mtimes reliably, so times are never compared.
RSYNC_BASE = ("rsync", "-r", "--no-times", "--delete")


def _quote_all(args: list[str]) -> list[str]:
    return [shlex.quote(a) for a in args]


def config_filter_args() -> list[str]:
    """Exclusions applied to the config directory."""
    args = [f"--exclude=*{suffix}" for suffix in CONFIG_EXCLUDE_SUFFIXES]
    args.extend(f"--exclude={name}" for name in BOOKKEEPING_FILES)
    return args


def workspace_filter_args() -> list[str]:
    """Whitelist of workspace root files and subtrees, everything else excluded."""
    args = [f"--include={name}" for name in WORKSPACE_ROOT_FILES]
    for subtree in WORKSPACE_SUBTREES:
        args.append(f"--include={subtree}/")
        args.append(f"--include={subtree}/***")
    args.append("--exclude=*")
    return args


def mirror_command(
    source: Path,
    target: Path,
    filters: Optional[list[str]] = None,
    copy_links: bool = False,
) -> str:
    """Build an rsync command mirroring ``source`` onto ``target``.

    Files under ``target`` that are absent from ``source`` are deleted,
    unless a filter excludes them.

    Args:
        source: Directory to copy from.
        target: Directory to copy onto (created if missing).
        filters: Extra ``--include``/``--exclude`` arguments.
        copy_links: Copy symlink targets instead of the links.

    Returns:
        str: Shell command.
    """
    args = list(RSYNC_BASE)
    if copy_links:
        args.append("--copy-links")
    args.extend(filters or [])
    args.append(f"{source}/")
    args.append(f"{target}/")
    return (
        f"mkdir -p {shlex.quote(str(target))} && " + " ".join(_quote_all(args))
    )


def copy_file_command(source: Path, target: Path) -> str:
    """Single-file copy, used for the flat legacy config layout."""
    return (
        f"mkdir -p {shlex.quote(str(target.parent))} && "
        f"cp -f {shlex.quote(str(source))} {shlex.quote(str(target))}"
    )


class StepFailed(Exception):
    """A copy step did not complete.

    Attributes:
        step: Short name of the step.
        details: Output captured from the tool, or a description.
    """

    def __init__(self, step: str, details: str):
        super().__init__(f"{step}: {details}")
        self.step = step
        self.details = details


def run_step(
    runner: ProcessRunner,
    step: str,
    command: str,
    timeout: float,
    poll_interval: float = 0.5,
) -> str:
    """Run one copy step and raise if it did not finish cleanly.

    Args:
        runner: Process runner.
        step: Short name used in logs and errors.
        command: Shell command to run.
        timeout: Maximum seconds to wait.
        poll_interval: Seconds between status checks.

    Returns:
        str: Captured diagnostics (may be empty).

    Raises:
        StepFailed: On timeout, a non-zero exit code, or a process that
            could not be started.
    """
    logger.info("Step %s", step)
    logger.debug("Step %s command: %s", step, command)
    try:
        result = run_command(
            runner, command, timeout=timeout, poll_interval=poll_interval
        )
    except OSError as exc:
        raise StepFailed(step, str(exc)) from exc

    if result.timed_out:
        details = f"did not finish within {timeout:.0f}s"
        if result.diagnostics:
            details += f": {result.diagnostics}"
        raise StepFailed(step, details)
    if result.exit_code not in (0, None):
        raise StepFailed(
            step,
            result.diagnostics or f"exited with code {result.exit_code}",
        )
    return result.diagnostics
