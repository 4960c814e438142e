"""
Clawkeeper CLI — restore and back up agent state from the shell.

Command groups live in their own modules and are registered on the
main Click group here.

Entry point: clawkeeper.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="clawkeeper")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging.")
def main(verbose: bool):
    """Clawkeeper — durable state for sandboxed agents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Register all command groups/commands from modular files
# ---------------------------------------------------------------------------

from .storage import register_storage_commands
from .manifest_cmd import register_manifest_commands
from .compat_cmd import register_compat_commands

register_storage_commands(main)
register_manifest_commands(main)
register_compat_commands(main)
