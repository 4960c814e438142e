"""Which on-disk convention holds the state, on each side of the mirror.

Three generations of backups live in the wild:

    <bucket>/openclaw/openclaw.json     current
    <bucket>/openclaw/clawdbot.json     current dir, legacy file name
    <bucket>/clawdbot/clawdbot.json     legacy nested
    <bucket>/clawdbot.json              legacy flat

Probes are plain existence checks, newest convention first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .compat import (
    CONFIG_FILE_NAME,
    LEGACY_CONFIG_FILE_NAME,
    LEGACY_REMOTE_CONFIG_PREFIX,
    REMOTE_CONFIG_PREFIX,
    REMOTE_WORKSPACE_PREFIXES,
)
from .config import StoragePaths
from .models import LayoutSource

logger = logging.getLogger("clawkeeper.layout")


def _layout_probes(remote_root: Path) -> list[tuple[LayoutSource, Path]]:
    return [
        (LayoutSource.CURRENT, remote_root / REMOTE_CONFIG_PREFIX / CONFIG_FILE_NAME),
        (
            LayoutSource.CURRENT_LEGACY_FILE,
            remote_root / REMOTE_CONFIG_PREFIX / LEGACY_CONFIG_FILE_NAME,
        ),
        (
            LayoutSource.LEGACY_NESTED,
            remote_root / LEGACY_REMOTE_CONFIG_PREFIX / LEGACY_CONFIG_FILE_NAME,
        ),
        (LayoutSource.LEGACY_FLAT, remote_root / LEGACY_CONFIG_FILE_NAME),
    ]


def resolve_restore_layout(remote_root: Path) -> LayoutSource:
    """Find the newest config convention present in the bucket.

    Args:
        remote_root: Mount point of the bucket.

    Returns:
        LayoutSource: First match wins; ``NONE`` if there is no backup.
    """
    for source, probe in _layout_probes(remote_root):
        if probe.is_file():
            logger.info("Restore layout: %s (%s)", source.value, probe)
            return source
    logger.info("No config backup found under %s", remote_root)
    return LayoutSource.NONE


def remote_config_source(remote_root: Path, layout: LayoutSource) -> Optional[Path]:
    """Remote path to copy config from for a resolved layout.

    Returns:
        A directory for nested layouts, the single file for the flat
        layout, or None for ``NONE``.
    """
    if layout in (LayoutSource.CURRENT, LayoutSource.CURRENT_LEGACY_FILE):
        return remote_root / REMOTE_CONFIG_PREFIX
    if layout is LayoutSource.LEGACY_NESTED:
        return remote_root / LEGACY_REMOTE_CONFIG_PREFIX
    if layout is LayoutSource.LEGACY_FLAT:
        return remote_root / LEGACY_CONFIG_FILE_NAME
    return None


def remote_workspace_dir(remote_root: Path) -> Optional[Path]:
    """First workspace prefix present in the bucket.

    Only one is ever used. Two prefixes may hold different content, and
    merging them could resurrect deleted notes.
    """
    for prefix in REMOTE_WORKSPACE_PREFIXES:
        candidate = remote_root / prefix
        if candidate.is_dir():
            return candidate
    return None


def resolve_active_config_dir(paths: StoragePaths) -> Optional[Path]:
    """Local directory that holds the authoritative config file.

    Args:
        paths: Local path configuration.

    Returns:
        The current-name directory if its config file exists, else the
        legacy one, else None. Sync must not proceed on None.
    """
    for directory, file_name in (
        (paths.config_dir, CONFIG_FILE_NAME),
        (paths.legacy_config_dir, LEGACY_CONFIG_FILE_NAME),
    ):
        if (directory / file_name).is_file():
            return directory
    return None
