"""Shared utilities for all CLI command modules.

Provides the Rich console, the engine factory, and result printing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click
from pydantic import BaseModel
from rich.console import Console

from .. import CLAWKEEPER_HOME
from ..config import load_config
from ..sync import StorageEngine

console = Console()
logger = logging.getLogger("clawkeeper.cli")

DEFAULT_CONFIG = str(Path(CLAWKEEPER_HOME) / "config.yaml")


def config_option(func):
    """Attach the shared ``--config`` option."""
    return click.option(
        "--config",
        "config_file",
        default=DEFAULT_CONFIG,
        type=click.Path(),
        help="Engine config file.",
        show_default=True,
    )(func)


def json_option(func):
    """Attach the shared ``--json`` flag."""
    return click.option("--json", "as_json", is_flag=True, help="Output as JSON.")(func)


def get_engine(config_file: Optional[str]) -> StorageEngine:
    """Build a storage engine from a config file path."""
    path = Path(config_file).expanduser() if config_file else None
    return StorageEngine(load_config(path))


def emit_json(result: BaseModel) -> None:
    """Print a result model exactly as the admin layer would relay it."""
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))


def fail_unless(ok: bool) -> None:
    """Exit non-zero for unsuccessful results."""
    if not ok:
        raise SystemExit(1)
