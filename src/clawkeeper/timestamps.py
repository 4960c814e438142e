"""Sync timestamps: the ``.last-sync`` files on both sides."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger("clawkeeper.timestamps")

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")

_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def now_timestamp() -> str:
    """Current UTC time, ISO-8601 to the second."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def looks_like_timestamp(value: Optional[str]) -> bool:
    return bool(value) and TIMESTAMP_PATTERN.match(value) is not None


def read_timestamp(path: Path) -> Optional[str]:
    """Read a timestamp file.

    Returns:
        The stripped value if it starts with a date, else None.
    """
    try:
        value = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value if looks_like_timestamp(value) else None


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse an ISO timestamp; anything unparseable is the epoch."""
    if not value:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable timestamp: %r", value)
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def remote_is_newer(remote_file: Path, local_file: Path) -> bool:
    """Whether the bucket holds a newer backup than the one restored locally.

    No remote timestamp means there is nothing to restore. No local
    timestamp means this container never restored, so any backup is newer.
    """
    try:
        if not remote_file.is_file():
            return False
        if not local_file.is_file():
            return True
        remote_value = remote_file.read_text(encoding="utf-8")
        local_value = local_file.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not compare sync timestamps: %s", exc)
        return False
    return parse_timestamp(remote_value) > parse_timestamp(local_value)
