"""Manifest commands: build, diff."""

from __future__ import annotations

import json

import click

from ..models import Manifest
from ._common import config_option, console, get_engine, json_option


def register_manifest_commands(main: click.Group) -> None:
    """Register the manifest command group."""

    @main.group()
    def manifest():
        """Manifests: what a sync would see as changed."""

    @manifest.command("build")
    @config_option
    @click.option("--print", "print_it", is_flag=True, help="Print the serialized manifest.")
    def manifest_build(config_file: str, print_it: bool):
        """Build the local manifest and write it to its well-known path."""
        engine = get_engine(config_file)
        try:
            built = engine.build_manifest()
        except OSError as exc:
            console.print(f"[red]Manifest build failed:[/] {exc}")
            raise SystemExit(1)

        if print_it:
            click.echo(built.to_json())
            return
        console.print(
            f"[green]Manifest written[/] ({len(built.entries)} entries) "
            f"[dim]{engine.paths.manifest_path}[/]"
        )

    @manifest.command("diff")
    @config_option
    @json_option
    def manifest_diff(config_file: str, as_json: bool):
        """Compare the local state with the manifest of the last sync."""
        engine = get_engine(config_file)
        try:
            local = engine.build_manifest()
        except OSError as exc:
            console.print(f"[red]Manifest build failed:[/] {exc}")
            raise SystemExit(1)
        remote = engine.remote_manifest() or Manifest()
        changes = local.diff(remote)

        if as_json:
            click.echo(json.dumps(changes, indent=2))
            return

        if not any(changes.values()):
            console.print("[green]No changes since last sync.[/]")
            return
        styles = {"added": "green", "removed": "red", "changed": "yellow"}
        for kind, paths in changes.items():
            for path in paths:
                console.print(f"  [{styles[kind]}]{kind:<8}[/] {path}")
