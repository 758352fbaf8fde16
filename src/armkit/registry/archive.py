"""Expansion of ``.tar.gz`` / ``.tgz`` / ``.zip`` files in package payloads.

Each archive is replaced by its members, placed under a directory named
after the archive (``rules.tar.gz`` -> ``rules/...``). Members that are
absolute or escape that directory are dropped. Other files pass through.
"""

from __future__ import annotations

import io
import logging
import posixpath
import tarfile
import zipfile

from armkit.core.files import File, normalize_path, sort_files
from armkit.exceptions import BackendError

logger = logging.getLogger(__name__)

_TAR_SUFFIXES = (".tar.gz", ".tgz")
_ZIP_SUFFIXES = (".zip",)


def archive_stem(path: str) -> str | None:
    """Return *path* without its archive suffix, or None for non-archives."""
    lower = path.lower()
    for suffix in _TAR_SUFFIXES + _ZIP_SUFFIXES:
        if lower.endswith(suffix):
            return path[: -len(suffix)]
    return None


def _safe_member(stem: str, name: str) -> str | None:
    name = normalize_path(name)
    joined = posixpath.normpath(posixpath.join(stem, name))
    if not name or joined == stem or not joined.startswith(stem + "/"):
        return None
    return joined


def _tar_members(data: bytes) -> list[tuple[str, bytes]]:
    members = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
        for info in tar.getmembers():
            if not info.isfile():
                continue
            fh = tar.extractfile(info)
            if fh is not None:
                members.append((info.name, fh.read()))
    return members


def _zip_members(data: bytes) -> list[tuple[str, bytes]]:
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return [(i.filename, zf.read(i)) for i in zf.infolist() if not i.is_dir()]


def extract_archives(files: list[File]) -> list[File]:
    """Expand every archive in *files*; later paths replace earlier ones.

    Raises:
        BackendError: If an archive is corrupt.
    """
    merged: dict[str, File] = {}
    for f in files:
        stem = archive_stem(f.path)
        if stem is None:
            merged[f.path] = f
            continue
        try:
            if f.path.lower().endswith(_TAR_SUFFIXES):
                members = _tar_members(f.content)
            else:
                members = _zip_members(f.content)
        except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as exc:
            raise BackendError(f"cannot extract archive {f.path}: {exc}") from exc
        for name, content in members:
            target = _safe_member(stem, name)
            if target is None:
                logger.warning("Skipping unsafe archive member %r in %s", name, f.path)
                continue
            merged[target] = File(path=target, content=content)
    return sort_files(list(merged.values()))
