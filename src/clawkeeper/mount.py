"""Remote bucket mount -- attach R2 at the mount point exactly once.

The bucket is mounted with ``s3fs``. Listing and stat calls through the
mount are slow, so callers should touch it as little as possible; the
mount itself is cheap to check and idempotent to request.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Optional

from .config import StorageCredentials, Timeouts
from .models import MountResult
from .sandbox import ProcessRunner, run_command

logger = logging.getLogger("clawkeeper.mount")


class MountManager:
    """Ensures the bucket is attached at ``mount_path``.

    Args:
        runner: Process runner for ``mount`` and ``s3fs``.
        mount_path: Where the bucket should appear.
        timeouts: Command timeouts.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        mount_path: Path,
        timeouts: Optional[Timeouts] = None,
    ) -> None:
        self._runner = runner
        self._mount_path = mount_path
        self._timeouts = timeouts or Timeouts()
        self._mounted = False

    @property
    def mount_path(self) -> Path:
        return self._mount_path

    def is_mounted(self) -> bool:
        """Check the system mount table for our s3fs mount.

        Returns:
            True if an ``s3fs on <mount_path>`` line is listed.
        """
        marker = f"s3fs on {self._mount_path} "
        try:
            result = run_command(
                self._runner,
                "mount",
                timeout=self._timeouts.check,
                poll_interval=self._timeouts.poll_interval,
            )
        except OSError as exc:
            logger.debug("Mount table check failed: %s", exc)
            return False
        mounted = any(line.startswith(marker) for line in result.stdout.splitlines())
        logger.debug("Mount table check for %s: %s", self._mount_path, mounted)
        return mounted

    def _mount_command(self, credentials: StorageCredentials) -> str:
        mount_path = shlex.quote(str(self._mount_path))
        return (
            f"mkdir -p {mount_path} && "
            f"s3fs {shlex.quote(credentials.bucket_name)} {mount_path}"
            f" -o url={shlex.quote(credentials.endpoint)}"
            " -o use_path_request_style"
        )

    def ensure_mounted(self, credentials: StorageCredentials) -> MountResult:
        """Mount the bucket unless it already is.

        Never raises. A failed attach is re-checked against the mount
        table once, since s3fs can report failure after mounting.

        Args:
            credentials: Bucket credentials. Incomplete credentials skip
                every external call.

        Returns:
            MountResult: ``mounted`` plus a diagnostic on failure.
        """
        missing = credentials.missing()
        if missing:
            logger.info("Storage not configured (missing %s)", ", ".join(missing))
            return MountResult(
                mounted=False,
                error="R2 storage is not configured",
                details=f"Missing {', '.join(missing)}",
            )

        if self._mounted or self.is_mounted():
            self._mounted = True
            logger.debug("Bucket already mounted at %s", self._mount_path)
            return MountResult(mounted=True)

        logger.info(
            "Mounting bucket %s at %s", credentials.bucket_name, self._mount_path
        )
        # s3fs reads these; keep secrets off the command line.
        env = {
            "AWSACCESSKEYID": credentials.access_key_id or "",
            "AWSSECRETACCESSKEY": credentials.secret_access_key or "",
        }
        try:
            result = run_command(
                self._runner,
                self._mount_command(credentials),
                timeout=self._timeouts.mount,
                env=env,
                poll_interval=self._timeouts.poll_interval,
            )
            if result.timed_out:
                error = f"s3fs did not finish within {self._timeouts.mount:.0f}s"
            elif result.exit_code not in (0, None):
                error = result.diagnostics or f"s3fs exited with {result.exit_code}"
            else:
                error = None
        except OSError as exc:
            error = str(exc)

        if error is None:
            self._mounted = True
            logger.info("Bucket mounted at %s", self._mount_path)
            return MountResult(mounted=True)

        logger.warning("Mount attempt failed: %s", error)
        if self.is_mounted():
            self._mounted = True
            logger.info("Bucket is mounted despite the error")
            return MountResult(mounted=True)

        logger.error("Failed to mount bucket at %s: %s", self._mount_path, error)
        return MountResult(
            mounted=False, error="Failed to mount R2 storage", details=error
        )
