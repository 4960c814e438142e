"""
Storage engine -- the one object the admin layer and CLI talk to.

Wires config, process runner, mount manager, and the restore and backup
orchestrators together. Every public method returns a result model;
none raises for an expected failure.

    clawkeeper storage restore  ->  mount -> layout -> copy -> marker -> manifest
    clawkeeper storage sync     ->  guards -> manifest check -> copy -> timestamp
"""

from __future__ import annotations

import logging
from typing import Optional

from ..compat import (
    CONFIG_FILE_NAME,
    LEGACY_CONFIG_FILE_NAME,
    LEGACY_REMOTE_CONFIG_PREFIX,
    REMOTE_CONFIG_PREFIX,
)
from ..config import EngineConfig, load_config
from ..layout import resolve_active_config_dir
from ..manifest import build_manifest, read_manifest_text, write_manifest
from ..models import (
    Manifest,
    MountResult,
    ResetResult,
    RestoreResult,
    RestoreStage,
    StorageStatus,
    SyncResult,
)
from ..mount import MountManager
from ..sandbox import LocalProcessRunner, ProcessRunner
from ..timestamps import read_timestamp
from .backup import SyncOrchestrator
from .restore import RestoreOrchestrator

logger = logging.getLogger("clawkeeper.sync.engine")

CONFIGURED_MESSAGE = (
    "R2 storage is configured. Your data will persist across container restarts."
)
NOT_CONFIGURED_MESSAGE = (
    "R2 storage is not configured. Paired devices and conversations "
    "will be lost when the container restarts."
)


class StorageEngine:
    """Restore, sync, and inspect the agent's mirrored state.

    Assumes at most one restore or sync runs at a time per container.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        runner: Optional[ProcessRunner] = None,
        mount: Optional[MountManager] = None,
    ):
        """Initialize the storage engine.

        Args:
            config: Engine configuration. Defaults to :func:`load_config`.
            runner: Process runner. Defaults to a local shell runner.
            mount: Mount manager. Built from the config if omitted.
        """
        self.config = config or load_config()
        self.paths = self.config.paths
        self.runner = runner or LocalProcessRunner()
        self.mount = mount or MountManager(
            self.runner, self.paths.mount_path, self.config.timeouts
        )
        self.restorer = RestoreOrchestrator(self.config, self.runner, self.mount)
        self.syncer = SyncOrchestrator(self.config, self.runner, self.mount)

    def ensure_mounted(self) -> MountResult:
        return self.mount.ensure_mounted(self.config.credentials)

    def restore(self) -> RestoreResult:
        return self.restorer.restore()

    def restore_if_newer(self) -> RestoreResult:
        """Restore unless the last restore already brought in the newest backup.

        Returns:
            RestoreResult: ``skipped`` is True when nothing was copied.
        """
        if self.restorer.has_restore_marker() and not self.remote_is_newer():
            logger.info("Local state is up to date; restore skipped")
            return RestoreResult(
                success=True,
                skipped=True,
                stage=RestoreStage.RESTORED,
                last_sync=read_timestamp(self.paths.local_last_sync),
            )
        return self.restore()

    def sync(self) -> SyncResult:
        return self.syncer.sync()

    def remote_is_newer(self) -> bool:
        """Whether the bucket holds a newer backup than the last one restored.

        False if the bucket cannot be mounted.
        """
        if not self.ensure_mounted().mounted:
            return False
        return self.restorer.remote_is_newer()

    def status(self) -> StorageStatus:
        """Credential presence and the bucket's last sync time.

        Returns:
            StorageStatus: Never raises; a failed mount just leaves
                ``last_sync`` empty.
        """
        credentials = self.config.credentials
        missing = credentials.missing()
        last_sync = None
        if not missing and self.ensure_mounted().mounted:
            last_sync = read_timestamp(self.paths.remote_last_sync)

        return StorageStatus(
            configured=not missing,
            missing=missing,
            last_sync=last_sync,
            message=CONFIGURED_MESSAGE if not missing else NOT_CONFIGURED_MESSAGE,
        )

    def build_manifest(self) -> Manifest:
        """Build and persist the local manifest.

        Raises:
            OSError: If a tree cannot be walked.
        """
        config_dir = resolve_active_config_dir(self.paths) or self.paths.config_dir
        manifest = build_manifest(
            config_dir, self.paths.skills_dir, self.paths.workspace_dir
        )
        write_manifest(manifest, self.paths.manifest_path)
        return manifest

    def remote_manifest(self) -> Optional[Manifest]:
        """The manifest saved by the last sync, if the bucket has one."""
        if not self.ensure_mounted().mounted:
            return None
        return Manifest.from_json(read_manifest_text(self.paths.remote_manifest))

    def reset_config(self, clear_remote: bool = False) -> ResetResult:
        """Delete the agent config so it is regenerated on next start.

        Args:
            clear_remote: Also delete config and timestamp from the bucket,
                so a restore does not bring the old config back.

        Returns:
            ResetResult: Paths that were removed.
        """
        targets = [
            self.paths.config_dir / CONFIG_FILE_NAME,
            self.paths.legacy_config_dir / LEGACY_CONFIG_FILE_NAME,
            self.paths.local_last_sync,
        ]
        if clear_remote:
            mount_result = self.ensure_mounted()
            if not mount_result.mounted:
                return ResetResult(
                    success=False,
                    error=mount_result.error or "Failed to mount R2 storage",
                )
            root = self.paths.mount_path
            targets.extend([
                self.paths.remote_last_sync,
                root / REMOTE_CONFIG_PREFIX / CONFIG_FILE_NAME,
                root / REMOTE_CONFIG_PREFIX / LEGACY_CONFIG_FILE_NAME,
                root / LEGACY_REMOTE_CONFIG_PREFIX / LEGACY_CONFIG_FILE_NAME,
                root / LEGACY_CONFIG_FILE_NAME,
            ])

        removed: list[str] = []
        for path in targets:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.error("Could not remove %s: %s", path, exc)
                return ResetResult(success=False, removed=removed, error=str(exc))
            removed.append(str(path))
            logger.info("Removed %s", path)

        return ResetResult(success=True, removed=removed)
