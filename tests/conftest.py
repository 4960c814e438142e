"""Shared test fixtures for clawkeeper."""

from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from clawkeeper.config import EngineConfig, StorageCredentials, StoragePaths, Timeouts

from fakes import FakeRunner


@pytest.fixture
def paths(tmp_path: Path) -> StoragePaths:
    """Local and remote trees under a temporary directory."""
    workspace = tmp_path / "root" / "clawd"
    storage_paths = StoragePaths(
        mount_path=tmp_path / "data" / "moltbot",
        config_dir=tmp_path / "root" / ".openclaw",
        legacy_config_dir=tmp_path / "root" / ".clawdbot",
        workspace_dir=workspace,
        skills_dir=workspace / "skills",
    )
    storage_paths.mount_path.mkdir(parents=True)
    return storage_paths


@pytest.fixture
def credentials() -> StorageCredentials:
    return StorageCredentials(
        access_key_id="AKIDEXAMPLE",
        secret_access_key="s3cr3t-value",
        account_id="abc123",
    )


@pytest.fixture
def engine_config(paths: StoragePaths, credentials: StorageCredentials) -> EngineConfig:
    return EngineConfig(
        credentials=credentials,
        paths=paths,
        timeouts=Timeouts(check=2, mount=2, mirror=20, poll_interval=0.01),
    )


@pytest.fixture
def runner(paths: StoragePaths) -> FakeRunner:
    return FakeRunner(paths.mount_path)


@pytest.fixture
def seeded_local(paths: StoragePaths) -> StoragePaths:
    """A local state tree with config, skills, and a mixed workspace."""
    paths.config_dir.mkdir(parents=True)
    (paths.config_dir / "openclaw.json").write_text(
        json.dumps({"gateway": {"port": 18789, "mode": "local"}}, indent=2)
    )
    (paths.config_dir / "devices").mkdir()
    (paths.config_dir / "devices" / "paired.json").write_text("[]")
    (paths.config_dir / "gateway.lock").write_text("1234")

    paths.skills_dir.mkdir(parents=True)
    (paths.skills_dir / "weather.md").write_text("# Weather skill\n")

    ws = paths.workspace_dir
    (ws / "IDENTITY.md").write_text("I am the agent.\n")
    (ws / "USER.md").write_text("The user.\n")
    (ws / "memory").mkdir()
    (ws / "memory" / "a.txt").write_text("remember this\n")
    (ws / "scratch").mkdir()
    (ws / "scratch" / "tmp.bin").write_bytes(b"\x00\x01")
    return paths


@pytest.fixture
def disconnected_mount(paths: StoragePaths):
    """Every stat under the mount point fails like a dead s3fs mount.

    The mount table still lists the mount, as it does when s3fs dies.
    """
    real_stat = os.stat
    prefix = str(paths.mount_path)

    def stat(path, *args, **kwargs):
        if not isinstance(path, int) and str(os.fspath(path)).startswith(prefix):
            raise OSError(
                errno.ENOTCONN, "Transport endpoint is not connected", os.fspath(path)
            )
        return real_stat(path, *args, **kwargs)

    with patch("os.stat", side_effect=stat):
        yield paths
