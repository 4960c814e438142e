"""
Engine configuration -- credentials, paths, and timeouts.

Loaded from ``$CLAWKEEPER_HOME/config.yaml`` when present. Storage
credentials are always overlaid from the environment, because that is
where the platform injects them.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import CLAWKEEPER_HOME

logger = logging.getLogger("clawkeeper.config")

# Environment variable -> StorageCredentials field
CREDENTIAL_ENV_VARS = {
    "R2_ACCESS_KEY_ID": "access_key_id",
    "R2_SECRET_ACCESS_KEY": "secret_access_key",
    "CF_ACCOUNT_ID": "account_id",
}

BUCKET_ENV_VAR = "R2_BUCKET_NAME"
DEFAULT_BUCKET = "moltbot-data"


class StorageCredentials(BaseModel):
    """Access to the remote bucket.

    Any missing piece means storage is not configured. That is a
    steady state, not an error.
    """

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    account_id: Optional[str] = None
    bucket_name: str = DEFAULT_BUCKET

    @property
    def endpoint(self) -> str:
        """S3 endpoint of the account's R2 storage."""
        return f"https://{self.account_id}.r2.cloudflarestorage.com"

    def missing(self) -> list[str]:
        """Names of the environment variables that are not set.

        Returns:
            list[str]: Variable names in a fixed order, empty when complete.
        """
        return [
            env_name
            for env_name, field_name in CREDENTIAL_ENV_VARS.items()
            if not getattr(self, field_name)
        ]

    @property
    def configured(self) -> bool:
        return not self.missing()


class StoragePaths(BaseModel):
    """Filesystem locations on both sides of the mirror."""

    mount_path: Path = Path("/data/moltbot")
    config_dir: Path = Path("/root/.openclaw")
    legacy_config_dir: Path = Path("/root/.clawdbot")
    workspace_dir: Path = Path("/root/clawd")
    skills_dir: Path = Path("/root/clawd/skills")

    @property
    def manifest_path(self) -> Path:
        """Local copy of the last generated manifest."""
        return self.config_dir / ".sync-manifest.json"

    @property
    def restore_marker(self) -> Path:
        """Presence means local state was reconciled with the bucket."""
        return self.config_dir / ".restored-from-r2"

    @property
    def local_last_sync(self) -> Path:
        return self.config_dir / ".last-sync"

    @property
    def remote_manifest(self) -> Path:
        return self.mount_path / "manifest.json"

    @property
    def remote_last_sync(self) -> Path:
        return self.mount_path / ".last-sync"


class Timeouts(BaseModel):
    """Upper bounds, in seconds, for each kind of external command."""

    check: float = 5.0
    mount: float = 30.0
    mirror: float = 30.0
    poll_interval: float = 0.5


class EngineConfig(BaseModel):
    """Complete configuration for the storage engine."""

    credentials: StorageCredentials = Field(default_factory=StorageCredentials)
    paths: StoragePaths = Field(default_factory=StoragePaths)
    timeouts: Timeouts = Field(default_factory=Timeouts)


def credentials_from_env(
    environ: Optional[dict[str, str]] = None,
    base: Optional[StorageCredentials] = None,
) -> StorageCredentials:
    """Overlay credentials from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.
        base: Credentials to start from (e.g. loaded from YAML).

    Returns:
        StorageCredentials: A new object; ``base`` is not modified.
    """
    env = os.environ if environ is None else environ
    data = (base or StorageCredentials()).model_dump()
    for env_name, field_name in CREDENTIAL_ENV_VARS.items():
        value = env.get(env_name)
        if value:
            data[field_name] = value
    bucket = env.get(BUCKET_ENV_VAR)
    if bucket:
        data["bucket_name"] = bucket
    return StorageCredentials(**data)


def load_config(
    config_file: Optional[Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> EngineConfig:
    """Load engine configuration from disk and the environment.

    Args:
        config_file: YAML file to read. Defaults to
            ``$CLAWKEEPER_HOME/config.yaml``.
        environ: Environment mapping used for credentials.

    Returns:
        EngineConfig: Defaults for anything not configured.
    """
    path = (config_file or Path(CLAWKEEPER_HOME) / "config.yaml").expanduser()
    config = EngineConfig()
    if path.exists():
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
            config = EngineConfig(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s", path, exc)

    config.credentials = credentials_from_env(environ, base=config.credentials)
    return config
