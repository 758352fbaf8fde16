"""Timestamp and JSON helpers for cache metadata files."""

from __future__ import annotations

import json
import os
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from armkit.exceptions import FsError

METADATA_FILE = "metadata.json"

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).isoformat()


def from_iso(text: str) -> datetime:
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def advance(previous: str | None) -> str:
    """Return now, or one microsecond past *previous* if the clock lags."""
    now = utcnow()
    if previous:
        try:
            floor = from_iso(previous) + _TICK
        except ValueError:
            floor = now
        if now < floor:
            now = floor
    return to_iso(now)


def read_json(path: Path) -> dict[str, Any]:
    """Read a metadata file.

    Raises:
        FsError: If the file cannot be read or does not hold a JSON object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise FsError(f"cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise FsError(f"{path}: expected a JSON object")
    return data


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write *data* to *path* atomically via a sibling temp file.

    Raises:
        OSError: On any filesystem failure; callers wrap it.
    """
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}")
    try:
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()
