"""Tests for layout resolution on both sides of the mirror."""

from __future__ import annotations

from pathlib import Path

import pytest

from clawkeeper.config import StoragePaths
from clawkeeper.layout import (
    remote_config_source,
    remote_workspace_dir,
    resolve_active_config_dir,
    resolve_restore_layout,
)
from clawkeeper.models import LayoutSource


def _touch(path: Path, content: str = "{}") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


class TestResolveRestoreLayout:
    """Tests for remote config probing."""

    def test_empty_bucket(self, tmp_path: Path) -> None:
        """An empty bucket resolves to no layout."""
        assert resolve_restore_layout(tmp_path) is LayoutSource.NONE

    @pytest.mark.parametrize("rel,expected", [
        ("openclaw/openclaw.json", LayoutSource.CURRENT),
        ("openclaw/clawdbot.json", LayoutSource.CURRENT_LEGACY_FILE),
        ("clawdbot/clawdbot.json", LayoutSource.LEGACY_NESTED),
        ("clawdbot.json", LayoutSource.LEGACY_FLAT),
    ])
    def test_each_layout_alone(self, tmp_path: Path, rel: str, expected) -> None:
        """Each layout is detected on its own."""
        _touch(tmp_path / rel)
        assert resolve_restore_layout(tmp_path) is expected

    def test_current_wins_over_every_legacy_layout(self, tmp_path: Path) -> None:
        """The current layout beats all legacy ones."""
        for rel in (
            "clawdbot.json",
            "clawdbot/clawdbot.json",
            "openclaw/clawdbot.json",
            "openclaw/openclaw.json",
        ):
            _touch(tmp_path / rel)
        assert resolve_restore_layout(tmp_path) is LayoutSource.CURRENT

    def test_nested_legacy_wins_over_flat(self, tmp_path: Path) -> None:
        """Nested legacy beats flat legacy."""
        _touch(tmp_path / "clawdbot.json")
        _touch(tmp_path / "clawdbot" / "clawdbot.json")
        assert resolve_restore_layout(tmp_path) is LayoutSource.LEGACY_NESTED

    def test_directory_named_like_config_is_not_a_match(self, tmp_path: Path) -> None:
        """Only regular files count as config."""
        (tmp_path / "openclaw" / "openclaw.json").mkdir(parents=True)
        assert resolve_restore_layout(tmp_path) is LayoutSource.NONE

    def test_empty_current_dir_falls_through(self, tmp_path: Path) -> None:
        """A current prefix without a config file is ignored."""
        (tmp_path / "openclaw").mkdir()
        _touch(tmp_path / "clawdbot" / "clawdbot.json")
        assert resolve_restore_layout(tmp_path) is LayoutSource.LEGACY_NESTED


class TestRemoteConfigSource:
    """Tests for mapping a layout to the path to copy."""

    def test_sources(self, tmp_path: Path) -> None:
        """Each layout maps to its copy source."""
        assert remote_config_source(tmp_path, LayoutSource.CURRENT) == tmp_path / "openclaw"
        assert (
            remote_config_source(tmp_path, LayoutSource.CURRENT_LEGACY_FILE)
            == tmp_path / "openclaw"
        )
        assert (
            remote_config_source(tmp_path, LayoutSource.LEGACY_NESTED) == tmp_path / "clawdbot"
        )
        assert (
            remote_config_source(tmp_path, LayoutSource.LEGACY_FLAT)
            == tmp_path / "clawdbot.json"
        )
        assert remote_config_source(tmp_path, LayoutSource.NONE) is None

    def test_legacy_file_name_flag(self) -> None:
        """Only legacy-named layouts need a rename."""
        assert not LayoutSource.CURRENT.uses_legacy_file_name
        assert LayoutSource.LEGACY_FLAT.uses_legacy_file_name
        assert not LayoutSource.NONE.uses_legacy_file_name


class TestRemoteWorkspaceDir:
    """Tests for workspace prefix selection."""

    def test_none_present(self, tmp_path: Path) -> None:
        """No workspace prefix in the bucket."""
        assert remote_workspace_dir(tmp_path) is None

    def test_alternate_prefix(self, tmp_path: Path) -> None:
        """The older workspace prefix is used when alone."""
        (tmp_path / "workspace-core").mkdir()
        assert remote_workspace_dir(tmp_path) == tmp_path / "workspace-core"

    def test_primary_prefix_wins(self, tmp_path: Path) -> None:
        """The current workspace prefix wins over the older one."""
        (tmp_path / "workspace").mkdir()
        (tmp_path / "workspace-core").mkdir()
        assert remote_workspace_dir(tmp_path) == tmp_path / "workspace"


class TestResolveActiveConfigDir:
    """Tests for local config directory selection."""

    def test_nothing_local(self, paths: StoragePaths) -> None:
        """No local config anywhere."""
        assert resolve_active_config_dir(paths) is None

    def test_current_name(self, paths: StoragePaths) -> None:
        """The current config dir is found."""
        _touch(paths.config_dir / "openclaw.json")
        assert resolve_active_config_dir(paths) == paths.config_dir

    def test_legacy_only(self, paths: StoragePaths) -> None:
        """Falls back to the legacy config dir."""
        _touch(paths.legacy_config_dir / "clawdbot.json")
        assert resolve_active_config_dir(paths) == paths.legacy_config_dir

    def test_current_preferred(self, paths: StoragePaths) -> None:
        """Current dir wins when both exist."""
        _touch(paths.config_dir / "openclaw.json")
        _touch(paths.legacy_config_dir / "clawdbot.json")
        assert resolve_active_config_dir(paths) == paths.config_dir

    def test_directory_without_config_file(self, paths: StoragePaths) -> None:
        """A config dir without its file does not count."""
        paths.config_dir.mkdir(parents=True)
        (paths.config_dir / "devices").mkdir()
        assert resolve_active_config_dir(paths) is None
