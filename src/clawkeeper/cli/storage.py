"""Storage commands: status, mount, restore, sync, reset."""

from __future__ import annotations

import click
from rich.panel import Panel
from rich.table import Table

from ._common import config_option, console, emit_json, fail_unless, get_engine, json_option


def _print_failure(error, details) -> None:
    console.print(f"  [bold red]{error or 'Failed'}[/]")
    if details:
        console.print(f"  [dim]{details}[/]")


def register_storage_commands(main: click.Group) -> None:
    """Register the storage command group."""

    @main.group()
    def storage():
        """Remote storage: restore and back up agent state.

        \b
        Restore once when the container starts, then sync on a schedule:
            clawkeeper storage restore
            clawkeeper storage sync
        """

    @storage.command("status")
    @config_option
    @json_option
    def storage_status(config_file: str, as_json: bool):
        """Show whether storage is configured and when it last synced."""
        engine = get_engine(config_file)
        status = engine.status()

        if as_json:
            emit_json(status)
            return

        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Key", style="dim")
        table.add_column("Value")
        table.add_row(
            "Configured",
            "[bold green]YES[/]" if status.configured else "[bold red]NO[/]",
        )
        if status.missing:
            table.add_row("Missing", ", ".join(status.missing))
        table.add_row("Mount point", str(engine.paths.mount_path))
        table.add_row("Last sync", status.last_sync or "[dim]never[/]")
        table.add_row(
            "Restored",
            "[green]yes[/]" if engine.restorer.has_restore_marker() else "[yellow]no[/]",
        )

        console.print()
        console.print(Panel(table, title="[bold]Remote Storage[/]", border_style="cyan"))
        console.print(f"  [dim]{status.message}[/]\n")

    @storage.command("mount")
    @config_option
    @json_option
    def storage_mount(config_file: str, as_json: bool):
        """Mount the bucket if it is not mounted yet."""
        engine = get_engine(config_file)
        result = engine.ensure_mounted()

        if as_json:
            emit_json(result)
        elif result.mounted:
            console.print(f"[green]Mounted[/] at [cyan]{engine.paths.mount_path}[/]")
        else:
            _print_failure(result.error, result.details)
        fail_unless(result.mounted)

    @storage.command("restore")
    @config_option
    @json_option
    @click.option(
        "--if-newer",
        is_flag=True,
        help="Only restore when the bucket's last sync is newer than ours.",
    )
    def storage_restore(config_file: str, as_json: bool, if_newer: bool):
        """Restore config, skills, and workspace notes from the bucket.

        \b
        Examples:

            clawkeeper storage restore

            clawkeeper storage restore --if-newer --json
        """
        engine = get_engine(config_file)
        if not as_json:
            console.print("\n  Restoring from remote storage...", end=" ")
        result = engine.restore_if_newer() if if_newer else engine.restore()

        if as_json:
            emit_json(result)
        elif result.skipped:
            console.print("[green]up to date[/]")
            console.print("  [dim]Local state is up to date, nothing to restore.[/]\n")
        elif result.success:
            console.print("[green]done[/]")
            console.print(f"  Layout: [cyan]{result.layout.value}[/]")
            console.print(f"  Last sync: {result.last_sync or '[dim]unknown[/]'}\n")
        else:
            console.print("[red]failed[/]")
            _print_failure(result.error, result.details)
        fail_unless(result.success)

    @storage.command("sync")
    @config_option
    @json_option
    def storage_sync(config_file: str, as_json: bool):
        """Back up local state to the bucket if anything changed."""
        engine = get_engine(config_file)
        if not as_json:
            console.print("\n  Syncing to remote storage...", end=" ")
        result = engine.sync()

        if as_json:
            emit_json(result)
        elif result.success:
            label = "no changes" if result.skipped else "done"
            console.print(f"[green]{label}[/]")
            console.print(f"  Last sync: {result.last_sync or '[dim]unknown[/]'}\n")
        else:
            console.print("[red]failed[/]")
            _print_failure(result.error, result.details)
        fail_unless(result.success)

    @storage.command("reset")
    @config_option
    @json_option
    @click.option(
        "--clear-remote",
        is_flag=True,
        help="Also delete the config and timestamp from the bucket.",
    )
    @click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
    def storage_reset(config_file: str, as_json: bool, clear_remote: bool, yes: bool):
        """Delete the agent config so it is regenerated on next start."""
        if not yes:
            where = "locally and in the bucket" if clear_remote else "locally"
            click.confirm(f"Delete the agent config {where}?", abort=True)

        engine = get_engine(config_file)
        result = engine.reset_config(clear_remote=clear_remote)

        if as_json:
            emit_json(result)
        elif result.success:
            console.print(f"[green]Reset.[/] Removed {len(result.removed)} file(s).")
            for path in result.removed:
                console.print(f"  [dim]{path}[/]")
        else:
            _print_failure(result.error, None)
        fail_unless(result.success)
