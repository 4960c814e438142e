"""Names that changed across agent generations.

The agent has shipped as ``clawdbot``, then ``openclaw``, and as the
``openclawbot-online`` build. Config files, directories, bucket
prefixes, and the CLI binary all carry one of those names. Every lookup
that has to try more than one generation takes its candidates from here,
newest first.
"""

from __future__ import annotations

import shlex

CONFIG_FILE_NAME = "openclaw.json"
LEGACY_CONFIG_FILE_NAME = "clawdbot.json"

REMOTE_CONFIG_PREFIX = "openclaw"
LEGACY_REMOTE_CONFIG_PREFIX = "clawdbot"

REMOTE_SKILLS_PREFIX = "skills"
REMOTE_WORKSPACE_PREFIXES = ("workspace", "workspace-core")

CLI_BIN_CANDIDATES = ("openclawbot-online", "openclaw", "clawdbot")


def resolve_cli_command(args: str) -> str:
    """Build a shell command that runs the first agent CLI installed.

    The last candidate is invoked unconditionally if no earlier one is
    found on ``PATH``.

    Args:
        args: Argument string appended verbatim to the binary.

    Returns:
        str: A ``/bin/sh`` command string.
    """
    suffix = f" {args}" if args else ""
    *probed, fallback = CLI_BIN_CANDIDATES
    branches = []
    for index, binary in enumerate(probed):
        keyword = "if" if index == 0 else "elif"
        branches.append(
            f"{keyword} command -v {binary} >/dev/null 2>&1; then {binary}{suffix};"
        )
    return " ".join(branches) + f" else {fallback}{suffix}; fi"


def resolve_cli_argv(args: list[str]) -> str:
    """Like :func:`resolve_cli_command`, quoting each argument."""
    return resolve_cli_command(" ".join(shlex.quote(a) for a in args))


def is_cli_command(command: str) -> bool:
    """True for a device-management or version query of any generation."""
    return any(
        f"{binary} devices" in command or f"{binary} --version" in command
        for binary in CLI_BIN_CANDIDATES
    )


def is_gateway_command(command: str) -> bool:
    """True for a command line that launches the agent gateway."""
    if "start-moltbot.sh" in command:
        return True
    return any(f"{binary} gateway" in command for binary in CLI_BIN_CANDIDATES)
