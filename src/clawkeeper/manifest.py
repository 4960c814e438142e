"""
Manifest engine -- a cheap fingerprint of everything we mirror.

Walks the config, skills, and workspace trees with the same filters the
mirror copy uses, and records (path, size, mtime) for every regular
file. If the fresh manifest matches the one stored in the bucket, a
sync has nothing to do and skips the expensive copies.

Layout of the serialized form::

    {"entries":[{"path":"config/openclaw.json","size":812,"mtime":1760000000000}, ...]}
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from .models import Manifest, ManifestEntry

logger = logging.getLogger("clawkeeper.manifest")

CONFIG_CATEGORY = "config"
SKILLS_CATEGORY = "skills"
WORKSPACE_CATEGORY = "workspace"

# Never mirrored from the config dir
CONFIG_EXCLUDE_SUFFIXES = (".lock", ".log", ".tmp")

# Engine bookkeeping kept beside the config; mirroring these would make
# every manifest see the previous one.
BOOKKEEPING_FILES = (".sync-manifest.json", ".restored-from-r2", ".last-sync")

WORKSPACE_ROOT_FILES = ("IDENTITY.md", "USER.md", "SOUL.md", "MEMORY.md")
WORKSPACE_SUBTREES = ("memory", "assets")

# (relative path, is_dir) -> include?
PathFilter = Callable[[str, bool], bool]


def config_filter(rel: str, is_dir: bool) -> bool:
    """Every file except locks, logs, temp files, and bookkeeping."""
    if is_dir:
        return True
    if rel.endswith(CONFIG_EXCLUDE_SUFFIXES):
        return False
    return rel.rsplit("/", 1)[-1] not in BOOKKEEPING_FILES


def workspace_filter(rel: str, is_dir: bool) -> bool:
    """Whitelisted root files plus the memory/ and assets/ subtrees."""
    top = rel.split("/", 1)[0]
    if is_dir:
        return top in WORKSPACE_SUBTREES
    if rel in WORKSPACE_ROOT_FILES:
        return True
    return "/" in rel and top in WORKSPACE_SUBTREES


def _walk(
    base: Path,
    current: Path,
    category: str,
    path_filter: Optional[PathFilter],
    entries: list[ManifestEntry],
) -> None:
    try:
        children = sorted(os.scandir(current), key=lambda e: e.name)
    except FileNotFoundError:
        return

    for child in children:
        full = Path(child.path)
        rel = full.relative_to(base).as_posix()
        if child.is_dir():
            if path_filter and not path_filter(rel, True):
                continue
            _walk(base, full, category, path_filter, entries)
        elif child.is_file():
            if path_filter and not path_filter(rel, False):
                continue
            st = full.stat()
            entries.append(
                ManifestEntry(
                    path=f"{category}/{rel}",
                    size=st.st_size,
                    mtime_ms=st.st_mtime_ns // 1_000_000,
                )
            )


def build_manifest(
    config_dir: Path, skills_dir: Path, workspace_dir: Path
) -> Manifest:
    """Inventory the three mirrored trees.

    Missing trees contribute nothing. Symlinks are followed.

    Args:
        config_dir: Active local config directory.
        skills_dir: Local skills directory.
        workspace_dir: Local workspace root.

    Returns:
        Manifest: Entries sorted by path.

    Raises:
        OSError: If a file cannot be stat'ed while walking.
    """
    entries: list[ManifestEntry] = []
    _walk(config_dir, config_dir, CONFIG_CATEGORY, config_filter, entries)
    _walk(skills_dir, skills_dir, SKILLS_CATEGORY, None, entries)
    _walk(workspace_dir, workspace_dir, WORKSPACE_CATEGORY, workspace_filter, entries)

    entries.sort(key=lambda e: e.path)
    logger.debug("Manifest built: %d entries", len(entries))
    return Manifest(entries=entries)


def write_manifest(manifest: Manifest, path: Path) -> str:
    """Persist a manifest and return its serialized text."""
    text = manifest.to_json()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return text


def read_manifest_text(path: Path) -> str:
    """Stored manifest text, stripped; empty if absent or unreadable."""
    try:
        return path.read_text(encoding="utf-8").strip()
    except (FileNotFoundError, NotADirectoryError):
        return ""
    except OSError as exc:
        logger.warning("Could not read manifest %s: %s", path, exc)
        return ""


def manifests_equal(local_text: str, remote_text: str) -> bool:
    """Both present and byte-identical."""
    return bool(local_text) and bool(remote_text) and local_text == remote_text
