"""
Data models -- manifests, layouts, and operation results.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LayoutSource(str, Enum):
    """Which remote config convention a restore reads from.

    Ordered newest to oldest.
    """

    CURRENT = "current"
    CURRENT_LEGACY_FILE = "current_legacy_file"
    LEGACY_NESTED = "legacy_nested"
    LEGACY_FLAT = "legacy_flat"
    NONE = "none"

    @property
    def uses_legacy_file_name(self) -> bool:
        return self in (
            LayoutSource.CURRENT_LEGACY_FILE,
            LayoutSource.LEGACY_NESTED,
            LayoutSource.LEGACY_FLAT,
        )


class ErrorKind(str, Enum):
    """Why a mount, restore, or sync did not succeed."""

    NOT_CONFIGURED = "not_configured"
    MOUNT_FAILED = "mount_failed"
    RESTORE_REQUIRED = "restore_required"
    CONFIG_MISSING = "config_missing"
    LAYOUT_UNRESOLVED = "layout_unresolved"
    COPY_FAILED = "copy_failed"
    VERIFICATION_FAILED = "verification_failed"


class RestoreStage(str, Enum):
    """How far a restore attempt got."""

    NOT_MOUNTED = "not_mounted"
    MOUNTED = "mounted"
    LAYOUT_RESOLVED = "layout_resolved"
    RESTORED = "restored"
    MANIFEST_BASELINED = "manifest_baselined"


class ManifestEntry(BaseModel):
    """One regular file in the mirrored state.

    ``path`` carries a category prefix (``config/``, ``skills/``,
    ``workspace/``) and always uses forward slashes.
    """

    model_config = ConfigDict(populate_by_name=True)

    path: str
    size: int
    mtime_ms: int = Field(alias="mtime")


class Manifest(BaseModel):
    """Sorted inventory of every mirrored file.

    Two manifests are equal when their serialized forms are
    byte-identical. That is the whole change-detection scheme.
    """

    entries: list[ManifestEntry] = Field(default_factory=list)

    def to_json(self) -> str:
        """Compact, deterministic serialization (keys in field order)."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text: str) -> Optional["Manifest"]:
        """Parse a serialized manifest.

        Returns:
            Manifest, or None if the text is empty or malformed.
        """
        if not text or not text.strip():
            return None
        try:
            return cls.model_validate(json.loads(text))
        except ValueError:
            return None

    @property
    def paths(self) -> list[str]:
        return [e.path for e in self.entries]

    def diff(self, other: "Manifest") -> dict[str, list[str]]:
        """Paths added, removed, or changed going from ``other`` to self.

        Args:
            other: The older manifest (typically the remote one).

        Returns:
            dict: ``added``, ``removed``, ``changed`` sorted path lists.
        """
        mine = {e.path: e for e in self.entries}
        theirs = {e.path: e for e in other.entries}
        return {
            "added": sorted(set(mine) - set(theirs)),
            "removed": sorted(set(theirs) - set(mine)),
            "changed": sorted(
                p for p in set(mine) & set(theirs) if mine[p] != theirs[p]
            ),
        }


class MountResult(BaseModel):
    """Outcome of ``ensure_mounted``."""

    mounted: bool
    error: Optional[str] = None
    details: Optional[str] = None


class SyncResult(BaseModel):
    """Outcome of a backup attempt.

    ``skipped`` is True when the manifests matched and nothing was copied.
    """

    success: bool
    last_sync: Optional[str] = None
    skipped: bool = False
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    details: Optional[str] = None


class RestoreResult(BaseModel):
    """Outcome of a restore attempt.

    ``skipped`` is True when a conditional restore found nothing newer.
    """

    success: bool
    stage: RestoreStage = RestoreStage.NOT_MOUNTED
    layout: Optional[LayoutSource] = None
    last_sync: Optional[str] = None
    skipped: bool = False
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None
    details: Optional[str] = None


class StorageStatus(BaseModel):
    """What the admin layer shows about remote storage."""

    configured: bool
    missing: list[str] = Field(default_factory=list)
    last_sync: Optional[str] = None
    message: str = ""


class ResetResult(BaseModel):
    """Outcome of a config reset."""

    success: bool
    removed: list[str] = Field(default_factory=list)
    error: Optional[str] = None
