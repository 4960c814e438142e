"""
Restore -- bring the bucket's state back into a fresh container.

    mount -> resolve layout -> copy config, skills, workspace
          -> stamp restore marker -> baseline manifest

Until the restore marker exists, backup refuses to run. A container
that has not restored must never overwrite a good backup with its
empty filesystem.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..compat import CONFIG_FILE_NAME, LEGACY_CONFIG_FILE_NAME, REMOTE_SKILLS_PREFIX
from ..config import EngineConfig
from ..layout import (
    remote_config_source,
    remote_workspace_dir,
    resolve_active_config_dir,
    resolve_restore_layout,
)
from ..manifest import build_manifest, read_manifest_text, write_manifest
from ..models import ErrorKind, LayoutSource, RestoreResult, RestoreStage
from ..mount import MountManager
from ..sandbox import ProcessRunner
from ..timestamps import now_timestamp, read_timestamp, remote_is_newer
from .mirror import (
    StepFailed,
    config_filter_args,
    copy_file_command,
    mirror_command,
    run_step,
    workspace_filter_args,
)

logger = logging.getLogger("clawkeeper.sync.restore")


class RestoreOrchestrator:
    """Copies remote state onto the local working directories.

    Args:
        config: Engine configuration.
        runner: Process runner for the copy tools.
        mount: Mount manager for the bucket.
    """

    def __init__(
        self, config: EngineConfig, runner: ProcessRunner, mount: MountManager
    ) -> None:
        self.config = config
        self.paths = config.paths
        self.timeouts = config.timeouts
        self.runner = runner
        self.mount = mount

    @property
    def remote_root(self) -> Path:
        return self.paths.mount_path

    def has_restore_marker(self) -> bool:
        return self.paths.restore_marker.is_file()

    def remote_is_newer(self) -> bool:
        """Whether the bucket's last sync is newer than the local copy of it."""
        return remote_is_newer(self.paths.remote_last_sync, self.paths.local_last_sync)

    def _step(self, step: str, command: str) -> None:
        run_step(
            self.runner,
            step,
            command,
            timeout=self.timeouts.mirror,
            poll_interval=self.timeouts.poll_interval,
        )

    def _restore_config(self, layout: LayoutSource) -> None:
        source = remote_config_source(self.remote_root, layout)
        config_dir = self.paths.config_dir
        if layout is LayoutSource.LEGACY_FLAT:
            self._step(
                "restore-config",
                copy_file_command(source, config_dir / CONFIG_FILE_NAME),
            )
            return

        self._step(
            "restore-config",
            mirror_command(source, config_dir, filters=config_filter_args()),
        )
        legacy_file = config_dir / LEGACY_CONFIG_FILE_NAME
        current_file = config_dir / CONFIG_FILE_NAME
        if layout.uses_legacy_file_name and legacy_file.is_file() and not current_file.exists():
            legacy_file.rename(current_file)
            logger.info("Renamed %s to %s", legacy_file.name, current_file.name)

    def _restore_skills(self) -> None:
        remote_skills = self.remote_root / REMOTE_SKILLS_PREFIX
        if not remote_skills.is_dir():
            logger.info("No skills in backup")
            return
        self._step("restore-skills", mirror_command(remote_skills, self.paths.skills_dir))

    def _restore_workspace(self) -> None:
        remote_workspace = remote_workspace_dir(self.remote_root)
        if remote_workspace is None:
            logger.info("No workspace in backup")
            return
        self._step(
            "restore-workspace",
            mirror_command(
                remote_workspace,
                self.paths.workspace_dir,
                filters=workspace_filter_args(),
            ),
        )

    def _copy_last_sync(self) -> None:
        remote = self.paths.remote_last_sync
        if not remote.is_file():
            return
        try:
            shutil.copyfile(remote, self.paths.local_last_sync)
        except OSError as exc:
            logger.warning("Could not copy sync timestamp: %s", exc)

    def _bucket_is_empty(self) -> bool:
        """True if the bucket holds nothing a backup would have written."""
        if remote_workspace_dir(self.remote_root) is not None:
            return False
        return not any(
            path.exists()
            for path in (
                self.remote_root / REMOTE_SKILLS_PREFIX,
                self.paths.remote_manifest,
                self.paths.remote_last_sync,
            )
        )

    def _mark_empty_bucket_reconciled(self) -> None:
        # Nothing remote can be overwritten, so the first backup may run.
        try:
            self.paths.restore_marker.parent.mkdir(parents=True, exist_ok=True)
            self.paths.restore_marker.write_text(now_timestamp() + "\n", encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write restore marker: %s", exc)
            return
        logger.info("Bucket is empty; local state marked as reconciled")

    def _baseline_manifest(self) -> bool:
        """Make the local manifest match what the bucket last saved.

        Returns:
            bool: True if a baseline was established.
        """
        config_dir = resolve_active_config_dir(self.paths)
        if config_dir is None:
            logger.warning("No config file after restore; manifest not baselined")
            return False

        try:
            manifest = build_manifest(
                config_dir, self.paths.skills_dir, self.paths.workspace_dir
            )
            local_text = write_manifest(manifest, self.paths.manifest_path)
            remote_text = read_manifest_text(self.paths.remote_manifest)
            if remote_text:
                self.paths.manifest_path.write_text(remote_text, encoding="utf-8")
                logger.info("Local manifest baselined from the bucket")
            else:
                self.paths.remote_manifest.write_text(local_text, encoding="utf-8")
                logger.info("Uploaded first manifest (%d entries)", len(manifest.entries))
        except OSError as exc:
            logger.warning("Manifest baseline failed: %s", exc)
            return False
        return True

    def restore(self) -> RestoreResult:
        """Restore config, skills, and workspace from the bucket.

        Re-running converges: every copy is a mirror with the bucket
        winning. A failed step leaves the marker absent so the next
        attempt starts over.

        Returns:
            RestoreResult: ``stage`` tells how far the attempt got.
        """
        credentials = self.config.credentials
        if not credentials.configured:
            return RestoreResult(
                success=False,
                error="R2 storage is not configured",
                kind=ErrorKind.NOT_CONFIGURED,
                details=f"Missing {', '.join(credentials.missing())}",
            )

        mount_result = self.mount.ensure_mounted(credentials)
        if not mount_result.mounted:
            return RestoreResult(
                success=False,
                error="Failed to mount R2 storage",
                kind=ErrorKind.MOUNT_FAILED,
                details=mount_result.details,
            )

        # A stale s3fs mount stays listed but fails every stat (ENOTCONN).
        try:
            self.remote_root.stat()
            layout = resolve_restore_layout(self.remote_root)
            bucket_empty = layout is LayoutSource.NONE and self._bucket_is_empty()
        except OSError as exc:
            logger.error("Bucket mount is not readable: %s", exc)
            return RestoreResult(
                success=False,
                error="Failed to mount R2 storage",
                kind=ErrorKind.MOUNT_FAILED,
                details=str(exc),
            )

        if layout is LayoutSource.NONE:
            if bucket_empty:
                self._mark_empty_bucket_reconciled()
            return RestoreResult(
                success=False,
                stage=RestoreStage.MOUNTED,
                layout=layout,
                error="No backup found in R2",
                kind=ErrorKind.LAYOUT_UNRESOLVED,
            )

        try:
            for directory in (
                self.paths.config_dir,
                self.paths.skills_dir,
                self.paths.workspace_dir,
            ):
                directory.mkdir(parents=True, exist_ok=True)
            self._restore_config(layout)
            self._restore_skills()
            self._restore_workspace()
            self._copy_last_sync()
            self.paths.restore_marker.write_text(now_timestamp() + "\n", encoding="utf-8")
        except StepFailed as exc:
            logger.error("Restore failed at %s: %s", exc.step, exc.details)
            return RestoreResult(
                success=False,
                stage=RestoreStage.LAYOUT_RESOLVED,
                layout=layout,
                error="Restore failed",
                kind=ErrorKind.COPY_FAILED,
                details=str(exc),
            )
        except OSError as exc:
            logger.error("Restore failed: %s", exc)
            return RestoreResult(
                success=False,
                stage=RestoreStage.LAYOUT_RESOLVED,
                layout=layout,
                error="Restore failed",
                kind=ErrorKind.COPY_FAILED,
                details=str(exc),
            )

        logger.info("Restored from %s layout", layout.value)
        stage = (
            RestoreStage.MANIFEST_BASELINED
            if self._baseline_manifest()
            else RestoreStage.RESTORED
        )
        return RestoreResult(
            success=True,
            stage=stage,
            layout=layout,
            last_sync=read_timestamp(self.paths.remote_last_sync),
        )
