"""Tests for engine configuration loading."""

from __future__ import annotations

from pathlib import Path

import yaml

from clawkeeper.config import (
    DEFAULT_BUCKET,
    EngineConfig,
    StorageCredentials,
    StoragePaths,
    credentials_from_env,
    load_config,
)


class TestStorageCredentials:
    """Tests for credential completeness."""

    def test_empty_credentials_report_all_missing(self) -> None:
        """No credentials: all three variables are missing."""
        creds = StorageCredentials()
        assert creds.missing() == ["R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "CF_ACCOUNT_ID"]
        assert creds.configured is False

    def test_one_missing_piece_is_not_configured(self) -> None:
        """Any single missing variable means not configured."""
        creds = StorageCredentials(access_key_id="a", secret_access_key="b")
        assert creds.missing() == ["CF_ACCOUNT_ID"]
        assert not creds.configured

    def test_complete_credentials(self, credentials: StorageCredentials) -> None:
        """Complete credentials report nothing missing."""
        assert credentials.missing() == []
        assert credentials.configured

    def test_endpoint_uses_account_id(self, credentials: StorageCredentials) -> None:
        """The R2 endpoint is built from the account id."""
        assert credentials.endpoint == "https://abc123.r2.cloudflarestorage.com"


class TestStoragePaths:
    """Tests for derived path properties."""

    def test_defaults_match_container_layout(self) -> None:
        """Default paths match the container."""
        paths = StoragePaths()
        assert paths.mount_path == Path("/data/moltbot")
        assert paths.config_dir == Path("/root/.openclaw")
        assert paths.legacy_config_dir == Path("/root/.clawdbot")
        assert paths.skills_dir == Path("/root/clawd/skills")

    def test_bookkeeping_lives_in_config_dir(self, paths: StoragePaths) -> None:
        """Manifest, marker, and local timestamp sit in the config dir."""
        assert paths.manifest_path.parent == paths.config_dir
        assert paths.restore_marker.parent == paths.config_dir
        assert paths.local_last_sync.name == ".last-sync"

    def test_remote_files_at_bucket_root(self, paths: StoragePaths) -> None:
        """Remote manifest and timestamp sit at the bucket root."""
        assert paths.remote_manifest == paths.mount_path / "manifest.json"
        assert paths.remote_last_sync == paths.mount_path / ".last-sync"


class TestCredentialsFromEnv:
    """Tests for environment overlay."""

    def test_reads_all_variables(self) -> None:
        """Each credential variable maps to its field."""
        creds = credentials_from_env({
            "R2_ACCESS_KEY_ID": "key",
            "R2_SECRET_ACCESS_KEY": "secret",
            "CF_ACCOUNT_ID": "acct",
            "R2_BUCKET_NAME": "my-bucket",
        })
        assert creds.access_key_id == "key"
        assert creds.secret_access_key == "secret"
        assert creds.account_id == "acct"
        assert creds.bucket_name == "my-bucket"

    def test_empty_values_do_not_override(self) -> None:
        """Empty env values keep the base value."""
        base = StorageCredentials(access_key_id="from-yaml")
        creds = credentials_from_env({"R2_ACCESS_KEY_ID": ""}, base=base)
        assert creds.access_key_id == "from-yaml"
        assert creds.bucket_name == DEFAULT_BUCKET

    def test_base_is_not_mutated(self) -> None:
        """Overlaying returns a copy."""
        base = StorageCredentials()
        credentials_from_env({"CF_ACCOUNT_ID": "acct"}, base=base)
        assert base.account_id is None


class TestLoadConfig:
    """Tests for YAML + environment loading."""

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        """No config file means defaults."""
        config = load_config(tmp_path / "nope.yaml", environ={})
        assert config == EngineConfig()

    def test_yaml_overrides_paths_and_timeouts(self, tmp_path: Path) -> None:
        """YAML values override only what they name."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "paths": {"mount_path": "/mnt/bucket", "workspace_dir": "/srv/ws"},
            "timeouts": {"mirror": 90},
        }))
        config = load_config(config_file, environ={})
        assert config.paths.mount_path == Path("/mnt/bucket")
        assert config.paths.workspace_dir == Path("/srv/ws")
        assert config.timeouts.mirror == 90
        assert config.timeouts.check == 5.0

    def test_env_credentials_overlay_yaml(self, tmp_path: Path) -> None:
        """Env credentials merge over YAML credentials."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({
            "credentials": {"account_id": "yaml-acct", "bucket_name": "yaml-bucket"},
        }))
        config = load_config(config_file, environ={
            "R2_ACCESS_KEY_ID": "k",
            "R2_SECRET_ACCESS_KEY": "s",
        })
        assert config.credentials.account_id == "yaml-acct"
        assert config.credentials.bucket_name == "yaml-bucket"
        assert config.credentials.configured

    def test_malformed_yaml_falls_back(self, tmp_path: Path) -> None:
        """Unparseable YAML falls back to defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("paths: [unclosed\n")
        config = load_config(config_file, environ={})
        assert config.paths == StoragePaths()

    def test_invalid_values_fall_back(self, tmp_path: Path) -> None:
        """Values that fail validation fall back to defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"timeouts": {"mirror": "forever"}}))
        config = load_config(config_file, environ={})
        assert config.timeouts.mirror == 30.0
