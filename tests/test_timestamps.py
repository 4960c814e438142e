"""Tests for sync timestamp handling."""

from __future__ import annotations

import errno
from pathlib import Path
from unittest.mock import patch

from clawkeeper.timestamps import (
    looks_like_timestamp,
    now_timestamp,
    parse_timestamp,
    read_timestamp,
    remote_is_newer,
)


class TestTimestamps:
    """Tests for reading and comparing ``.last-sync`` values."""

    def test_now_is_valid(self) -> None:
        """Generated timestamps pass verification."""
        assert looks_like_timestamp(now_timestamp())

    def test_pattern(self) -> None:
        """Only values starting with a date count."""
        assert looks_like_timestamp("2026-03-01T10:00:00+00:00")
        assert looks_like_timestamp("2026-03-01")
        assert not looks_like_timestamp("")
        assert not looks_like_timestamp(None)
        assert not looks_like_timestamp("cp: cannot stat")

    def test_read_strips_and_validates(self, tmp_path: Path) -> None:
        """Reading strips whitespace and rejects junk."""
        good = tmp_path / "good"
        good.write_text("2026-03-01T10:00:00Z\n")
        bad = tmp_path / "bad"
        bad.write_text("garbage\n")
        assert read_timestamp(good) == "2026-03-01T10:00:00Z"
        assert read_timestamp(bad) is None
        assert read_timestamp(tmp_path / "absent") is None

    def test_parse_z_suffix_and_naive(self) -> None:
        """Z suffix and naive values parse as UTC."""
        assert parse_timestamp("2026-03-01T10:00:00Z") == parse_timestamp(
            "2026-03-01T10:00:00+00:00"
        )
        assert parse_timestamp("2026-03-01T10:00:00") == parse_timestamp(
            "2026-03-01T10:00:00+00:00"
        )

    def test_parse_garbage_is_epoch(self) -> None:
        """Garbage parses as the epoch."""
        assert parse_timestamp("nope").year == 1970
        assert parse_timestamp(None).year == 1970


class TestRemoteIsNewer:
    """Tests for the restore-on-boot decision."""

    def test_no_remote(self, tmp_path: Path) -> None:
        """No remote timestamp: nothing to restore."""
        (tmp_path / "local").write_text("2026-01-01T00:00:00Z")
        assert not remote_is_newer(tmp_path / "remote", tmp_path / "local")

    def test_no_local(self, tmp_path: Path) -> None:
        """No local timestamp: the remote is newer."""
        (tmp_path / "remote").write_text("2026-01-01T00:00:00Z")
        assert remote_is_newer(tmp_path / "remote", tmp_path / "local")

    def test_compares_values(self, tmp_path: Path) -> None:
        """Only a strictly later remote value is newer."""
        remote = tmp_path / "remote"
        local = tmp_path / "local"
        remote.write_text("2026-02-01T00:00:00Z")
        local.write_text("2026-01-01T00:00:00Z")
        assert remote_is_newer(remote, local)

        local.write_text("2026-02-01T00:00:00Z")
        assert not remote_is_newer(remote, local)

    def test_unreadable_remote(self, tmp_path: Path) -> None:
        """An OSError while reading either side means no restore."""
        remote = tmp_path / "remote"
        local = tmp_path / "local"
        remote.write_text("2026-02-01T00:00:00Z")
        local.write_text("2026-01-01T00:00:00Z")
        error = OSError(errno.ENOTCONN, "Transport endpoint is not connected")

        with patch.object(Path, "read_text", side_effect=error):
            assert not remote_is_newer(remote, local)
