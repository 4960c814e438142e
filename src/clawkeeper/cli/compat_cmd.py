"""Agent CLI resolution command."""

from __future__ import annotations

import click

from ..compat import resolve_cli_argv


def register_compat_commands(main: click.Group) -> None:
    """Register the cli-command command."""

    @main.command("cli-command", context_settings={"ignore_unknown_options": True})
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    def cli_command(args):
        """Print the shell command that runs the installed agent CLI.

        \b
        Example:

            sh -c "$(clawkeeper cli-command devices list)"
        """
        click.echo(resolve_cli_argv(list(args)))
