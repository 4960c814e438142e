"""
Backup -- push local state to the bucket, only when something changed.

Preconditions, in order: credentials, mount, restore marker, config
file. Then the manifest fast path; then three mirror copies, manifest
upload, and the ``.last-sync`` timestamp that commits the attempt.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from ..compat import REMOTE_CONFIG_PREFIX, REMOTE_SKILLS_PREFIX, REMOTE_WORKSPACE_PREFIXES
from ..config import EngineConfig
from ..layout import resolve_active_config_dir
from ..manifest import build_manifest, manifests_equal, read_manifest_text, write_manifest
from ..models import ErrorKind, Manifest, SyncResult
from ..mount import MountManager
from ..sandbox import ProcessRunner
from ..timestamps import now_timestamp, read_timestamp
from .mirror import (
    StepFailed,
    config_filter_args,
    mirror_command,
    run_step,
    workspace_filter_args,
)

logger = logging.getLogger("clawkeeper.sync.backup")


class SyncOrchestrator:
    """Guarded push of local state to the bucket.

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

    def _fresh_manifest(self, config_dir: Path) -> Optional[Manifest]:
        try:
            manifest = build_manifest(
                config_dir, self.paths.skills_dir, self.paths.workspace_dir
            )
            write_manifest(manifest, self.paths.manifest_path)
        except OSError as exc:
            logger.warning("Manifest build failed, doing a full sync: %s", exc)
            return None
        return manifest

    def _push(self, config_dir: Path, manifest: Optional[Manifest]) -> str:
        """Run the copy steps, then upload the manifest.

        Returns:
            str: Diagnostics from the last copy step.

        Raises:
            StepFailed: If any step fails.
        """
        steps = [
            (
                "sync-config",
                mirror_command(
                    config_dir,
                    self.remote_root / REMOTE_CONFIG_PREFIX,
                    filters=config_filter_args(),
                    copy_links=True,
                ),
            ),
        ]
        # A missing local tree is skipped rather than mirrored as empty.
        if self.paths.skills_dir.is_dir():
            steps.append((
                "sync-skills",
                mirror_command(
                    self.paths.skills_dir, self.remote_root / REMOTE_SKILLS_PREFIX
                ),
            ))
        else:
            logger.info("No local skills directory, skipping")
        if self.paths.workspace_dir.is_dir():
            steps.append((
                "sync-workspace",
                mirror_command(
                    self.paths.workspace_dir,
                    self.remote_root / REMOTE_WORKSPACE_PREFIXES[0],
                    filters=workspace_filter_args(),
                ),
            ))
        else:
            logger.info("No local workspace directory, skipping")

        diagnostics = ""
        for step, command in steps:
            diagnostics = run_step(
                self.runner,
                step,
                command,
                timeout=self.timeouts.mirror,
                poll_interval=self.timeouts.poll_interval,
            )

        if manifest is not None:
            try:
                shutil.copyfile(self.paths.manifest_path, self.paths.remote_manifest)
            except OSError as exc:
                raise StepFailed("upload-manifest", str(exc)) from exc
        return diagnostics

    def sync(self) -> SyncResult:
        """Back up local state if it changed since the last sync.

        Returns:
            SyncResult: ``skipped`` when the manifests matched.
        """
        credentials = self.config.credentials
        if not credentials.configured:
            return SyncResult(
                success=False,
                error="R2 storage is not configured",
                kind=ErrorKind.NOT_CONFIGURED,
                details=f"Missing {', '.join(credentials.missing())}",
            )

        mount_result = self.mount.ensure_mounted(credentials)
        if not mount_result.mounted:
            return SyncResult(
                success=False,
                error="Failed to mount R2 storage",
                kind=ErrorKind.MOUNT_FAILED,
                details=mount_result.details,
            )

        if not self.paths.restore_marker.is_file():
            logger.warning("Backup refused: this container has not restored yet")
            return SyncResult(
                success=False,
                error="Restore required before backup",
                kind=ErrorKind.RESTORE_REQUIRED,
            )

        config_dir = resolve_active_config_dir(self.paths)
        if config_dir is None:
            return SyncResult(
                success=False,
                error="Sync aborted: no config file found",
                kind=ErrorKind.CONFIG_MISSING,
                details="Neither openclaw.json nor clawdbot.json found in config directory.",
            )

        manifest = self._fresh_manifest(config_dir)
        if manifest is not None:
            local_text = read_manifest_text(self.paths.manifest_path)
            remote_text = read_manifest_text(self.paths.remote_manifest)
            if manifests_equal(local_text, remote_text):
                logger.info("No changes since last sync")
                return SyncResult(
                    success=True,
                    skipped=True,
                    last_sync=read_timestamp(self.paths.remote_last_sync),
                )

        try:
            diagnostics = self._push(config_dir, manifest)
            self.paths.remote_last_sync.write_text(now_timestamp() + "\n", encoding="utf-8")
        except StepFailed as exc:
            logger.error("Sync failed at %s: %s", exc.step, exc.details)
            return SyncResult(
                success=False,
                error="Sync failed",
                kind=ErrorKind.COPY_FAILED,
                details=str(exc),
            )
        except OSError as exc:
            logger.error("Could not write sync timestamp: %s", exc)
            return SyncResult(
                success=False,
                error="Sync failed",
                kind=ErrorKind.VERIFICATION_FAILED,
                details=str(exc),
            )

        # The copy tools' own success signal is not trusted on s3fs.
        last_sync = read_timestamp(self.paths.remote_last_sync)
        if last_sync is None:
            return SyncResult(
                success=False,
                error="Sync failed",
                kind=ErrorKind.VERIFICATION_FAILED,
                details=diagnostics or "No timestamp file created",
            )

        logger.info("Sync complete at %s", last_sync)
        return SyncResult(success=True, last_sync=last_sync)
